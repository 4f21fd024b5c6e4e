"""Data structures for OBO documents.

The ordered list of tags in each stanza is the source of truth. Typed
accessors like :attr:`Stanza.is_obsolete` or :meth:`Stanza.is_a_edges`
are projections computed from it, so tags that oboflat has no accessor for
still survive a round trip.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import cached_property
from typing import TextIO

from curies import ReferenceTuple
from more_itertools import one

from .obo.grammar import format_tag
from .values import (
    Boolean,
    CrossReference,
    Identifier,
    IdentifierWithComment,
    PlainString,
    Qualifier,
    QuotedDefinition,
    RawValue,
    Relationship,
    Synonym,
    Xref,
)
from ..constants import DEFAULT_ID_SCOPE, IdScope, StanzaKind
from ..errors import DuplicateIdError, MissingRequiredTagError

__all__ = [
    "Document",
    "HeaderFrame",
    "Stanza",
    "Tag",
    "get_namespace",
    "get_uniqueness_key",
]

logger = logging.getLogger(__name__)


def get_namespace(identifier: str) -> str:
    """Get the namespace of an identifier, i.e., the prefix before the colon.

    Unprefixed identifiers like ``has_units`` are in the empty namespace.
    """
    prefix, sep, _ = identifier.partition(":")
    return prefix if sep else ""


def get_uniqueness_key(
    kind: StanzaKind, identifier: str, id_scope: IdScope = DEFAULT_ID_SCOPE
) -> tuple[str, ...]:
    """Get the key under which an identifier must be unique in a document."""
    if id_scope == "global":
        return (identifier,)
    return kind, get_namespace(identifier), identifier


@dataclass(frozen=True)
class Tag:
    """A ``name: value`` line in a header or stanza."""

    #: The name of the tag, like ``is_a``
    name: str
    #: The structured value
    value: RawValue
    #: The comment after ``!``, unless the value already carries it
    trailing_comment: str | None = None
    #: Trailing modifiers, like ``{source="PMID:1234"}``
    qualifiers: tuple[Qualifier, ...] = ()

    #: The value text as it appeared in the source, reused to keep its escapes
    raw_value: str | None = field(default=None, compare=False, repr=False)
    #: The physical lines of the tag, as they appeared in the source
    source: tuple[str, ...] | None = field(default=None, compare=False, repr=False)
    #: The blank and comment-only lines that appeared right before the tag
    leading: tuple[str, ...] | None = field(default=None, compare=False, repr=False)
    #: The 1-based line number where the tag appeared
    lineno: int | None = field(default=None, compare=False, repr=False)

    def to_obo(
        self, *, labels: Mapping[str, str] | None = None, drop_comments: bool = False
    ) -> str:
        """Write the tag as a line in canonical form."""
        return format_tag(self, labels=labels, drop_comments=drop_comments)

    def _iterate_source_lines(self) -> Iterable[str]:
        if self.source is None:
            yield self.to_obo()
        else:
            yield from self.leading or ()
            yield from self.source


def _canonical_rank(tag: Tag) -> int:
    match tag.name:
        case "id":
            return 0
        case "name":
            return 1
        case "def":
            return 2
        case "is_a" | "relationship":
            return 4
        case "is_obsolete":
            return 5
        case "comment":
            return 6
        case _:
            return 3


def _get_identifier(value: RawValue) -> str:
    match value:
        case Identifier(identifier) | IdentifierWithComment(identifier, _):
            return identifier
    raise TypeError(f"not an identifier: {value}")


@dataclass(frozen=True, eq=False)
class Stanza:
    """A ``[Term]``, ``[Typedef]``, or ``[Instance]`` block.

    Two stanzas are equal if they have the same kind and the same tags in
    canonical order, so reordering that only moves tags between the groups of
    the canonical skeleton doesn't change a stanza's meaning.
    """

    kind: StanzaKind
    tags: tuple[Tag, ...]

    #: The physical lines of the stanza marker, as they appeared in the source
    source: tuple[str, ...] | None = field(default=None, compare=False, repr=False)
    #: The blank and comment-only lines that appeared right before the marker
    leading: tuple[str, ...] | None = field(default=None, compare=False, repr=False)
    #: The 1-based line number of the marker
    lineno: int | None = field(default=None, compare=False, repr=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Stanza):
            return NotImplemented
        return (
            self.kind == other.kind
            and self._iter_canonical_tags() == other._iter_canonical_tags()
        )

    def __hash__(self) -> int:
        return hash((self.kind, tuple(self._iter_canonical_tags())))

    def tags_named(self, name: str) -> list[Tag]:
        """Get all tags with the given name, in order."""
        return [tag for tag in self.tags if tag.name == name]

    def _iter_values(self, name: str) -> Iterable[RawValue]:
        for tag in self.tags:
            if tag.name == name:
                yield tag.value

    @cached_property
    def id(self) -> str:
        """The identifier of the stanza, from its only ``id:`` tag."""
        tag = one(
            self.tags_named("id"),
            too_short=MissingRequiredTagError("id", lineno=self.lineno),
            too_long=DuplicateIdError("two id tags in one stanza", lineno=self.lineno),
        )
        return _get_identifier(tag.value)

    @cached_property
    def pair(self) -> ReferenceTuple:
        """The pair of namespace and local identifier."""
        namespace = get_namespace(self.id)
        return ReferenceTuple(namespace, self.id.removeprefix(f"{namespace}:"))

    @cached_property
    def name(self) -> str | None:
        """The name of the stanza, if it has one."""
        for value in self._iter_values("name"):
            if isinstance(value, PlainString):
                return value.value
        return None

    def get_boolean(self, name: str) -> bool | None:
        """Get the value of a boolean tag, or None if it's not there."""
        for value in self._iter_values(name):
            if isinstance(value, Boolean):
                return value.value
        return None

    @cached_property
    def is_obsolete(self) -> bool:
        """Is the stanza marked with ``is_obsolete: true``?"""
        return bool(self.get_boolean("is_obsolete"))

    @cached_property
    def is_transitive(self) -> bool:
        """Is the stanza marked with ``is_transitive: true``?

        This is only meaningful for typedefs. Cycles are never checked.
        """
        return bool(self.get_boolean("is_transitive"))

    def is_a_edges(self) -> list[str]:
        """Get the identifiers of the parents, in order."""
        return [
            _get_identifier(value)
            for value in self._iter_values("is_a")
            if isinstance(value, Identifier | IdentifierWithComment)
        ]

    def relationships(self) -> list[tuple[str, str]]:
        """Get the typedef and target identifiers of all relationships, in order."""
        return [
            (value.typedef_id, value.target_id)
            for value in self._iter_values("relationship")
            if isinstance(value, Relationship)
        ]

    def get_definition(self) -> QuotedDefinition | None:
        """Get the definition, if there is one."""
        for value in self._iter_values("def"):
            if isinstance(value, QuotedDefinition):
                return value
        return None

    def get_xrefs(self) -> list[Xref]:
        """Get the cross-references from ``xref:`` tags, in order."""
        return [
            value.xref for value in self._iter_values("xref") if isinstance(value, CrossReference)
        ]

    def get_synonyms(self) -> list[Synonym]:
        """Get the synonyms, in order."""
        return [value for value in self._iter_values("synonym") if isinstance(value, Synonym)]

    def get_comments(self) -> list[str]:
        """Get the text of the ``comment:`` tags, in order."""
        return [
            value.value for value in self._iter_values("comment") if isinstance(value, PlainString)
        ]

    def _iter_canonical_tags(self) -> list[Tag]:
        # sorting is stable, so tags of the same rank keep their original order
        return sorted(self.tags, key=_canonical_rank)

    def iterate_obo_lines(
        self,
        *,
        strict: bool = False,
        labels: Mapping[str, str] | None = None,
        drop_comments: bool = False,
    ) -> Iterable[str]:
        """Iterate over the lines of the stanza, starting with its marker.

        In strict mode, the marker and tags are written as they appeared in the
        source, in their original order. Otherwise, tags are written in canonical
        form and order: ``id``, ``name``, ``def``, all others as they appeared,
        ``is_a`` and ``relationship``, then ``is_obsolete`` and ``comment``.
        """
        if strict:
            yield from self.source or (f"[{self.kind}]",)
            for tag in self.tags:
                yield from tag._iterate_source_lines()
        else:
            yield f"[{self.kind}]"
            for tag in self._iter_canonical_tags():
                yield tag.to_obo(labels=labels, drop_comments=drop_comments)

    def _count_blank_lines(self) -> int | None:
        if self.leading is None:
            return None
        return sum(not line.strip() for line in self.leading)


@dataclass(frozen=True)
class HeaderFrame:
    """The header of a document, emitted first when streaming."""

    tags: tuple[Tag, ...] = ()


@dataclass(frozen=True)
class Document:
    """An OBO document made of a header and stanzas."""

    header: tuple[Tag, ...] = ()
    stanzas: tuple[Stanza, ...] = ()

    #: The blank and comment-only lines after the last element
    trailing: tuple[str, ...] | None = field(default=None, compare=False, repr=False)
    #: Did the source end with a newline?
    ends_with_newline: bool | None = field(default=None, compare=False, repr=False)

    def header_tags(self) -> tuple[Tag, ...]:
        """Get the header tags in their original order."""
        return self.header

    def get_header_values(self, name: str) -> list[RawValue]:
        """Get the values of all header tags with the given name."""
        return [tag.value for tag in self.header if tag.name == name]

    def get_header_value(self, name: str) -> RawValue | None:
        """Get the value of the first header tag with the given name."""
        values = self.get_header_values(name)
        return values[0] if values else None

    def stanzas_of_kind(self, kind: StanzaKind) -> list[Stanza]:
        """Get all stanzas of the given kind, in order."""
        return [stanza for stanza in self.stanzas if stanza.kind == kind]

    def iter_terms(self) -> Iterable[Stanza]:
        """Iterate over the ``[Term]`` stanzas."""
        return iter(self.stanzas_of_kind("Term"))

    def iter_typedefs(self) -> Iterable[Stanza]:
        """Iterate over the ``[Typedef]`` stanzas."""
        return iter(self.stanzas_of_kind("Typedef"))

    def iter_instances(self) -> Iterable[Stanza]:
        """Iterate over the ``[Instance]`` stanzas."""
        return iter(self.stanzas_of_kind("Instance"))

    def get_stanza(self, kind: StanzaKind, identifier: str) -> Stanza | None:
        """Get the stanza of the given kind with the given identifier."""
        for stanza in self.stanzas:
            if stanza.kind == kind and stanza.id == identifier:
                return stanza
        return None

    def get_labels(self) -> dict[str, str]:
        """Get a mapping from identifiers to names, e.g., to regenerate comments."""
        return {stanza.id: stanza.name for stanza in self.stanzas if stanza.name is not None}

    def iterate_obo_lines(
        self,
        *,
        strict: bool = False,
        preserve_blank_lines: bool = False,
        labels: Mapping[str, str] | None = None,
        drop_comments: bool = False,
    ) -> Iterable[str]:
        """Iterate over the lines of the document.

        :param strict: If true, reproduce the source text of every tag and stanza
            that has one, including blank and comment lines. A document produced by
            the parser and not modified gives back its input exactly.
        :param preserve_blank_lines: If true, keep the original number of blank lines
            before each stanza instead of exactly one. Ignored in strict mode.
        :param labels: A mapping from identifiers to labels, used to regenerate the
            comments after identifiers. Comments for unknown identifiers are dropped.
        :param drop_comments: If true, drop the comments after identifiers
        :raises ValueError: if comments are regenerated or dropped in strict mode
        """
        if strict and (labels is not None or drop_comments):
            raise ValueError("comments can't be regenerated or dropped in strict mode")
        if strict:
            yield from self._iterate_strict_lines()
            return

        for tag in self.header:
            yield tag.to_obo(labels=labels, drop_comments=drop_comments)
        for i, stanza in enumerate(self.stanzas):
            n_blank = stanza._count_blank_lines() if preserve_blank_lines else None
            if n_blank is None:
                n_blank = 1 if self.header or i else 0
            yield from [""] * n_blank
            yield from stanza.iterate_obo_lines(labels=labels, drop_comments=drop_comments)

    def _iterate_strict_lines(self) -> Iterable[str]:
        wrote = False
        for tag in self.header:
            yield from tag._iterate_source_lines()
            wrote = True
        for stanza in self.stanzas:
            if stanza.leading is not None:
                yield from stanza.leading
            elif wrote:
                yield ""
            yield from stanza.iterate_obo_lines(strict=True)
            wrote = True
        yield from self.trailing or ()

    def to_str(
        self,
        *,
        strict: bool = False,
        preserve_blank_lines: bool = False,
        labels: Mapping[str, str] | None = None,
        drop_comments: bool = False,
    ) -> str:
        """Write the document as OBO text."""
        lines = list(
            self.iterate_obo_lines(
                strict=strict,
                preserve_blank_lines=preserve_blank_lines,
                labels=labels,
                drop_comments=drop_comments,
            )
        )
        if not lines:
            return ""
        end = "" if strict and self.ends_with_newline is False else "\n"
        return "\n".join(lines) + end

    def serialize(
        self,
        *,
        strict: bool = False,
        preserve_blank_lines: bool = False,
        labels: Mapping[str, str] | None = None,
        drop_comments: bool = False,
    ) -> bytes:
        """Write the document as UTF-8 encoded OBO text."""
        return self.to_str(
            strict=strict,
            preserve_blank_lines=preserve_blank_lines,
            labels=labels,
            drop_comments=drop_comments,
        ).encode("utf-8")

    def write_obo(self, file: TextIO, **kwargs) -> None:
        """Write the document to an open file, see :meth:`to_str` for keyword arguments."""
        file.write(self.to_str(**kwargs))
