"""Tests for writing OBO documents."""

import unittest
from collections.abc import Iterable
from textwrap import dedent

from oboflat import Document, DocumentBuilder, from_str, parse
from oboflat.struct.struct import Stanza, Tag
from oboflat.struct.values import Identifier, PlainString, Relationship
from tests.constants import TEST_MS_OBO_PATH

#: The fixture in canonical form. Continued lines are joined, tags are reordered,
#: comment lines are dropped, and exactly one blank line separates stanzas.
CANONICAL_FIXTURE = """\
format-version: 1.2
data-version: 4.1.30
date: 06:10:2019 11:44
saved-by: Gerhard Mayer
auto-generated-by: OBO-Edit 2.3.1
import: http://ontologies.berkeleybop.org/pato.obo
import: http://ontologies.berkeleybop.org/uo.obo
subsetdef: PSI:MS_slim "PSI-MS slim"
synonymtypedef: systematic_synonym "Systematic synonym" EXACT
default-namespace: MS
namespace-id-rule: * MS:$sequence(7,0,9999999)$
remark: namespace: MS
remark: version: 4.1.30
remark: coverage: Mass spectrometer output files and spectra interpretation.  \
This file is the standard PSI vocabulary.
ontology: ms

[Term]
id: MS:0000000
name: Proteomics Standards Initiative Mass Spectrometry Vocabularies
def: "Proteomics Standards Initiative Mass Spectrometry Vocabularies." [PSI:MS]

[Term]
id: MS:1000004
name: sample mass
def: "Total mass of sample used." [PSI:MS]
xref: value-type:xsd\\:float "The allowed value-type for this CV term."
is_a: MS:1000548 ! sample attribute
relationship: has_units UO:0000021 ! gram

[Term]
id: MS:1000031
name: instrument model
def: "Instrument model name not including the vendor's name." [PSI:MS]
synonym: "instrument" RELATED []
synonym: "model" EXACT systematic_synonym [PSI:MS] {source="PSI:MS"}
relationship: has_value_type xsd\\:string ! The allowed value-type for this CV term
relationship: part_of MS:1000463 ! instrument
is_a: MS:1000000 ! PSI-MS controlled vocabulary

[Term]
id: MS:1000548
name: sample attribute
def: "Samples are described by attributes." []
is_a: MS:0000000 ! Proteomics Standards Initiative Mass Spectrometry Vocabularies
comment: This term is kept for backwards compatibility.

[Term]
id: MS:1000001
name: sample number
def: "A reference number relevant to the sample under study." [PSI:MS]
replaced_by: MS:1000002
is_obsolete: true

[Term]
id: PEFF:0000001
name: PEFF CV term
def: "PSI Extended FASTA Format controlled vocabulary term." [PSI:PEFF]
subset: PSI:MS_slim

[Typedef]
id: has_units
name: has_units
def: "A relation between a value and a unit." [PSI:MS]
is_transitive: false

[Typedef]
id: part_of
name: part_of
def: "Part-whole relationship." [PSI:MS]
xref: BFO:0000050
is_transitive: true
"""


class TestWriter(unittest.TestCase):
    """Test writing documents in canonical form."""

    def assert_lines(self, text: str, lines: Iterable[str]) -> None:
        """Assert the lines are equal."""
        self.assertEqual(dedent(text).strip(), "\n".join(lines).strip())

    def assert_canonical(self, text: str) -> None:
        """Assert that the text is written back unchanged."""
        self.assertEqual(dedent(text).strip() + "\n", from_str(text).to_str())

    def test_end_to_end(self):
        """Test that the sample mass term is reproduced verbatim."""
        self.assert_canonical("""\
            [Term]
            id: MS:1000004
            name: sample mass
            def: "Total mass of sample used." [PSI:MS]
            is_a: MS:1000548 ! sample attribute
            relationship: has_units UO:0000021
        """)

    def test_escaped_colon(self):
        """Test that an escaped colon is written back escaped."""
        self.assert_canonical("""\
            [Term]
            id: MS:1000031
            relationship: has_value_type xsd\\:string ! The allowed value-type for this CV term
        """)

    def test_escaped_colon_structured(self):
        """Test that escaped colons in cross-references and property values are kept."""
        self.assert_canonical("""\
            [Term]
            id: MS:1000004
            def: "Has a value type." [value-type:xsd\\:float]
            synonym: "mass" EXACT [value-type:xsd\\:float]
            xref: value-type:xsd\\:float "The allowed value-type for this CV term."
            property_value: IAO:0000117 "Charlie" xsd\\:string
        """)

    def test_missing_xref_list(self):
        """Test that definitions and synonyms always get an xref list."""
        document = from_str("""\
            [Term]
            id: MS:1
            def: "No list at all."
            synonym: "one" EXACT
        """)
        self.assert_lines(
            """\
            [Term]
            id: MS:1
            def: "No list at all." []
            synonym: "one" EXACT []
            """,
            document.iterate_obo_lines(),
        )

    def test_canonical_order(self):
        """Test the order of tags in a stanza."""
        document = from_str("""\
            [Term]
            comment: last
            is_obsolete: true
            relationship: part_of MS:3
            synonym: "first other" EXACT []
            is_a: MS:2
            xref: MS:4
            def: "definition" []
            name: name
            id: MS:1
        """)
        self.assert_lines(
            """\
            [Term]
            id: MS:1
            name: name
            def: "definition" []
            synonym: "first other" EXACT []
            xref: MS:4
            relationship: part_of MS:3
            is_a: MS:2
            is_obsolete: true
            comment: last
            """,
            document.iterate_obo_lines(),
        )

    def test_repeated_tags(self):
        """Test that repeated tags keep their order."""
        self.assert_canonical("""\
            format-version: 1.2
            remark: b
            remark: a
            remark: c

            [Term]
            id: MS:1
            alt_id: MS:9
            alt_id: MS:8
            is_a: MS:3
            is_a: MS:2
        """)

    def test_programmatic_escapes(self):
        """Test that programmatic values are escaped."""
        document = Document(
            stanzas=(
                Stanza(
                    "Term",
                    (
                        Tag("id", Identifier("MS:1")),
                        Tag("name", PlainString("wow! {nice}")),
                        Tag("is_a", Identifier("has space")),
                    ),
                ),
            )
        )
        self.assert_lines(
            """\
            [Term]
            id: MS:1
            name: wow\\! \\{nice\\}
            is_a: has\\Wspace
            """,
            document.iterate_obo_lines(),
        )

    def test_empty(self):
        """Test an empty document."""
        self.assertEqual("", Document().to_str())
        self.assertEqual(b"", Document().serialize())

    def test_comments(self):
        """Test regenerating and dropping comments."""
        document = from_str("""\
            [Term]
            id: MS:1
            name: one
            is_a: MS:2 ! old label
            relationship: part_of MS:3 ! stale
            relationship: part_of MS:4 ! gone

            [Term]
            id: MS:2
            name: two

            [Term]
            id: MS:3
            name: three
        """)
        lines = list(document.stanzas[0].iterate_obo_lines(labels=document.get_labels()))
        self.assertEqual(
            [
                "[Term]",
                "id: MS:1",
                "name: one",
                "is_a: MS:2 ! two",
                "relationship: part_of MS:3 ! three",
                "relationship: part_of MS:4",
            ],
            lines,
        )
        lines = list(document.stanzas[0].iterate_obo_lines(drop_comments=True))
        self.assertEqual(
            ["is_a: MS:2", "relationship: part_of MS:3", "relationship: part_of MS:4"],
            lines[3:],
        )
        with self.assertRaises(ValueError):
            document.to_str(strict=True, labels={})
        with self.assertRaises(ValueError):
            document.to_str(strict=True, drop_comments=True)

    def test_qualifiers_and_comment(self):
        """Test that qualifiers come before the comment."""
        self.assert_canonical("""\
            [Term]
            id: MS:1
            remark: text \\{braces\\} {note="n"} ! comment
            is_a: MS:2 {source="PMID:1234"} ! parent
        """)


class TestRoundTrip(unittest.TestCase):
    """Test round trips of a PSI-MS style document."""

    def setUp(self) -> None:
        """Read the fixture."""
        self.data = TEST_MS_OBO_PATH.read_bytes()
        self.document = parse(self.data)

    def test_canonical(self):
        """Test the canonical form of the fixture."""
        self.assertEqual(CANONICAL_FIXTURE, self.document.to_str())
        self.assertEqual(CANONICAL_FIXTURE.encode("utf-8"), self.document.serialize())

    def test_weak_round_trip(self):
        """Test that the canonical form reads back to an equal document."""
        reparsed = parse(self.document.serialize())
        self.assertEqual(self.document, reparsed)
        self.assertEqual(reparsed.serialize(), self.document.serialize())

    def test_strict_round_trip(self):
        """Test that strict mode reproduces the input byte for byte."""
        self.assertEqual(self.data, self.document.serialize(strict=True))

    def test_strict_round_trip_edge_cases(self):
        """Test strict mode without a final newline and with carriage returns."""
        for text in [
            "format-version: 1.2\n\n\n[Term]\nid: MS:1 ! comment",
            "format-version: 1.2\r\n\r\n[Term]\r\nid: MS:1\r\nremark: a \\\r\nb\r\n",
            "! leading comment\n[Term]\n\n\nid: MS:1\n\n! trailing\n\n",
        ]:
            with self.subTest(text=text):
                self.assertEqual(text, parse(text).to_str(strict=True))

    def test_preserve_blank_lines(self):
        """Test keeping the original number of blank lines between stanzas."""
        text = self.document.to_str(preserve_blank_lines=True)
        self.assertIn(
            "comment: This term is kept for backwards compatibility.\n\n\n[Term]\nid: MS:1000001",
            text,
        )
        self.assertEqual(self.document, parse(text))

    def test_strict_with_programmatic_tags(self):
        """Test that tags without source text are written canonically in strict mode."""
        document = (
            DocumentBuilder()
            .add_header_tag("format-version", "1.4")
            .new_stanza("Term", "MS:1")
            .add_tag("relationship", Relationship("part_of", "MS:2"), comment="two")
            .finalize()
        )
        self.assertEqual(document.to_str(), document.to_str(strict=True))
        self.assertEqual(
            "format-version: 1.4\n\n[Term]\nid: MS:1\nrelationship: part_of MS:2 ! two\n",
            document.to_str(),
        )
