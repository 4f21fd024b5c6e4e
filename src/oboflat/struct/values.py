"""Structured values of OBO tags.

Each tag's raw text is parsed into exactly one of the variants of
:data:`RawValue`. The value grammar in :mod:`oboflat.struct.obo.grammar`
is the only place that decides which variant a tag gets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from curies.vocabulary import SynonymScope

__all__ = [
    "Boolean",
    "CrossReference",
    "Identifier",
    "IdentifierWithComment",
    "PlainString",
    "PropertyValue",
    "Qualifier",
    "QuotedDefinition",
    "RawValue",
    "Relationship",
    "SubsetDef",
    "Synonym",
    "SynonymTypeDef",
    "Xref",
]


@dataclass(frozen=True)
class Xref:
    """A cross-reference, optionally with a quoted description."""

    #: The identifier of the cross-referenced resource
    id: str
    #: A human-readable description
    description: str | None = None


@dataclass(frozen=True)
class Qualifier:
    """A trailing modifier, like ``{source="PMID:1234"}``."""

    key: str
    value: str


@dataclass(frozen=True)
class PlainString:
    """Free text, with escapes resolved."""

    value: str


@dataclass(frozen=True)
class QuotedDefinition:
    """A quoted definition with its cross-references."""

    text: str
    xrefs: tuple[Xref, ...] = ()


@dataclass(frozen=True)
class Identifier:
    """A single identifier."""

    id: str


@dataclass(frozen=True)
class IdentifierWithComment:
    """An identifier followed by a non-authoritative comment, usually its label."""

    id: str
    comment: str


@dataclass(frozen=True)
class Relationship:
    """A relationship from the stanza to a target through a typedef."""

    typedef_id: str
    target_id: str
    trailing_comment: str | None = None


@dataclass(frozen=True)
class Boolean:
    """A ``true`` or ``false`` value."""

    value: bool


@dataclass(frozen=True)
class Synonym:
    """A synonym with optional scope, type, and cross-references."""

    text: str
    scope: SynonymScope | None = None
    synonym_type: str | None = None
    xrefs: tuple[Xref, ...] = ()


@dataclass(frozen=True)
class CrossReference:
    """The value of an ``xref:`` tag."""

    xref: Xref


@dataclass(frozen=True)
class SubsetDef:
    """The value of a ``subsetdef:`` header tag."""

    id: str
    description: str


@dataclass(frozen=True)
class SynonymTypeDef:
    """The value of a ``synonymtypedef:`` header tag."""

    id: str
    description: str
    scope: SynonymScope | None = None


@dataclass(frozen=True)
class PropertyValue:
    """The value of a ``property_value:`` tag.

    The value is either an identifier (``quoted`` is false) or a quoted
    literal with an optional datatype like ``xsd:string``.
    """

    relation_id: str
    value: str
    datatype: str | None = None
    quoted: bool = False


RawValue: TypeAlias = (
    PlainString
    | QuotedDefinition
    | Identifier
    | IdentifierWithComment
    | Relationship
    | Boolean
    | Synonym
    | CrossReference
    | SubsetDef
    | SynonymTypeDef
    | PropertyValue
)
