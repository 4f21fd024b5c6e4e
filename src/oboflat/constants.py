"""Constants for oboflat."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Literal, TypeAlias

from typing_extensions import NotRequired, TypedDict

__all__ = [
    "BOOLEAN_TAGS",
    "DEFAULT_ID_SCOPE",
    "IDENTIFIER_TAGS",
    "LABELED_TAGS",
    "QUOTED_TAGS",
    "STANZA_KINDS",
    "STRICT_IDENTIFIER_TAGS",
    "IdScope",
    "ParseKwargs",
    "SerializeKwargs",
    "StanzaKind",
    "check_id_scope",
    "check_should_use_strict",
]

logger = logging.getLogger(__name__)

#: The kinds of stanzas allowed in an OBO document
StanzaKind: TypeAlias = Literal["Term", "Typedef", "Instance"]

STANZA_KINDS: tuple[StanzaKind, ...] = ("Term", "Typedef", "Instance")

#: How identifier uniqueness is scoped. ``kind`` means that two stanzas
#: of the same kind can't share an identifier within the same namespace,
#: ``global`` means that no two stanzas in the document can share one.
IdScope: TypeAlias = Literal["kind", "global"]

DEFAULT_ID_SCOPE: IdScope = "kind"

#: Tags whose values are exactly ``true`` or ``false``
BOOLEAN_TAGS = frozenset(
    [
        "is_obsolete",
        "is_anonymous",
        "builtin",
        "is_transitive",
        "is_symmetric",
        "is_reflexive",
        "is_cyclic",
        "is_anti_symmetric",
        "is_asymmetric",
        "is_functional",
        "is_inverse_functional",
        "is_metadata_tag",
        "is_class_level",
    ]
)

#: Tags whose values are a single identifier, optionally followed by a
#: human-readable comment like ``is_a: MS:1000548 ! sample attribute``
IDENTIFIER_TAGS = frozenset(
    [
        "id",
        "is_a",
        "alt_id",
        "replaced_by",
        "consider",
        "instance_of",
        "union_of",
        "disjoint_from",
        "equivalent_to",
        "subset",
        "inverse_of",
        "transitive_over",
        "domain",
        "range",
    ]
)

#: Identifier tags where anything other than a single identifier is an error
STRICT_IDENTIFIER_TAGS = frozenset(["id", "is_a"])

#: Tags whose grammar starts with a quoted string
QUOTED_TAGS = frozenset(["def", "synonym"])

#: Tags whose comments can be regenerated from a label lookup
LABELED_TAGS = IDENTIFIER_TAGS.union({"relationship", "intersection_of"}) - {"id"}


class ParseKwargs(TypedDict):
    """Keyword arguments for :func:`oboflat.parse` and friends."""

    #: How identifier uniqueness is scoped
    id_scope: NotRequired[IdScope]


class SerializeKwargs(TypedDict):
    """Keyword arguments for :meth:`oboflat.Document.serialize` and friends."""

    #: Should the original source text be reproduced?
    strict: NotRequired[bool]
    #: Should the original number of blank lines between stanzas be kept?
    preserve_blank_lines: NotRequired[bool]
    #: A mapping from identifiers to labels used to regenerate comments
    labels: NotRequired[Mapping[str, str] | None]
    #: Should comments on identifiers be dropped?
    drop_comments: NotRequired[bool]


def check_id_scope(data: ParseKwargs) -> IdScope:
    """Get the identifier scope from generic keyword arguments."""
    id_scope = data.get("id_scope", DEFAULT_ID_SCOPE)
    if id_scope not in {"kind", "global"}:
        raise ValueError(f"invalid identifier scope: {id_scope}")
    return id_scope


def check_should_use_strict(data: SerializeKwargs) -> bool:
    """Determine whether strict serialization should be done based on generic keyword arguments."""
    return data.get("strict", False)
