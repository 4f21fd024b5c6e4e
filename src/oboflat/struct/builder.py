"""Build OBO documents programmatically."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from typing_extensions import Self

from .obo.grammar import coerce_value
from .struct import Document, Stanza, Tag, get_uniqueness_key
from .values import (
    CrossReference,
    Identifier,
    IdentifierWithComment,
    Qualifier,
    RawValue,
    Relationship,
    Xref,
)
from ..constants import DEFAULT_ID_SCOPE, STANZA_KINDS, IdScope, StanzaKind, check_id_scope
from ..errors import BuildError, DuplicateIdError, MalformedValueError

__all__ = [
    "DocumentBuilder",
]

logger = logging.getLogger(__name__)

ValueHint = RawValue | str | bool


def _attach_comment(
    name: str, value: RawValue, comment: str | None
) -> tuple[RawValue, str | None]:
    """Attach a comment to the value if it carries one, otherwise keep it on the tag."""
    if comment is None:
        return value, None
    match value:
        case Identifier(identifier) if name != "id":
            return IdentifierWithComment(identifier, comment), None
        case IdentifierWithComment(identifier, _):
            return IdentifierWithComment(identifier, comment), None
        case Relationship():
            return replace(value, trailing_comment=comment), None
    return value, comment


def _check_identifiers(name: str, value: RawValue) -> None:
    """Check that the identifiers in a value can be read back."""
    match value:
        case Identifier(identifier) | IdentifierWithComment(identifier, _):
            identifiers = [identifier]
        case Relationship(typedef_id, target_id, _):
            identifiers = [typedef_id, target_id]
        case CrossReference(xref):
            identifiers = [xref.id]
        case _:
            return
    for identifier in identifiers:
        if not identifier.strip():
            raise BuildError(f"{name} needs a non-empty identifier, got: {identifier!r}")


class DocumentBuilder:
    """Assemble a document tag by tag.

    .. code-block:: python

        document = (
            DocumentBuilder()
            .add_header_tag("format-version", "1.4")
            .new_stanza("Term", "MS:1000004")
            .add_tag("name", "sample mass")
            .add_tag("is_a", "MS:1000548", comment="sample attribute")
            .finalize()
        )

    Tags are kept in the order they're added. Identifier uniqueness is only
    checked in :meth:`finalize`.
    """

    def __init__(self, *, id_scope: IdScope = DEFAULT_ID_SCOPE) -> None:
        """Instantiate the builder.

        :param id_scope: How identifier uniqueness is scoped
        """
        self.id_scope = check_id_scope({"id_scope": id_scope})
        self._header: list[Tag] = []
        self._stanzas: list[tuple[StanzaKind, list[Tag]]] = []
        self._finalized = False

    def _check_open(self) -> None:
        if self._finalized:
            raise BuildError("the builder was already finalized")

    def add_header_tag(
        self,
        name: str,
        value: ValueHint,
        *,
        comment: str | None = None,
        qualifiers: Iterable[Qualifier] = (),
    ) -> Self:
        """Add a tag to the header."""
        self._check_open()
        self._header.append(self._make_tag(name, value, comment, qualifiers))
        return self

    def new_stanza(self, kind: StanzaKind, identifier: str) -> Self:
        """Open a new stanza, which gets the ``id`` tag first."""
        self._check_open()
        if kind not in STANZA_KINDS:
            raise BuildError(f"unknown stanza kind {kind}", stanza_id=identifier)
        if not identifier or identifier != identifier.strip():
            raise BuildError(f"invalid identifier {identifier!r}")
        self._stanzas.append((kind, [Tag("id", Identifier(identifier))]))
        return self

    def add_tag(
        self,
        name: str,
        value: ValueHint,
        *,
        comment: str | None = None,
        qualifiers: Iterable[Qualifier] = (),
    ) -> Self:
        """Add a tag to the current stanza.

        :param name: The name of the tag
        :param value: Either a structured value or a string or boolean, which is
            taken literally and coerced to the variant the tag's grammar implies
        :param comment: The comment written after ``!``. For identifier and
            relationship values, it's kept on the value itself.
        :param qualifiers: Trailing modifiers
        :raises BuildError: if there's no stanza yet
        :raises DuplicateIdError: if the tag is ``id``, which is set by :meth:`new_stanza`
        """
        self._check_open()
        if not self._stanzas:
            raise BuildError(f"can't add {name} before any stanza")
        kind, tags = self._stanzas[-1]
        stanza_id = tags[0].value.id  # type:ignore[union-attr]
        if name == "id":
            raise DuplicateIdError(f"[{kind}] stanza already has an id", stanza_id=stanza_id)
        try:
            tag = self._make_tag(name, value, comment, qualifiers)
        except BuildError as e:
            raise e.with_context(stanza_id=stanza_id) from None
        tags.append(tag)
        return self

    def append_parent(self, identifier: str, *, comment: str | None = None) -> Self:
        """Add an ``is_a`` tag to the current stanza."""
        return self.add_tag("is_a", Identifier(identifier), comment=comment)

    def append_relationship(
        self, typedef_id: str, target_id: str, *, comment: str | None = None
    ) -> Self:
        """Add a ``relationship`` tag to the current stanza."""
        return self.add_tag("relationship", Relationship(typedef_id, target_id), comment=comment)

    def append_xref(self, identifier: str, description: str | None = None) -> Self:
        """Add an ``xref`` tag to the current stanza."""
        return self.add_tag("xref", CrossReference(Xref(identifier, description)))

    @staticmethod
    def _make_tag(
        name: str, value: ValueHint, comment: str | None, qualifiers: Iterable[Qualifier]
    ) -> Tag:
        if not name or any(character.isspace() or character == ":" for character in name):
            raise BuildError(f"invalid tag name {name!r}")
        try:
            raw = coerce_value(name, value)
        except TypeError as e:
            raise BuildError(str(e)) from None
        except MalformedValueError as e:
            raise BuildError(e.text) from None
        _check_identifiers(name, raw)
        raw, trailing_comment = _attach_comment(name, raw, comment)
        return Tag(name, raw, trailing_comment=trailing_comment, qualifiers=tuple(qualifiers))

    def finalize(self) -> Document:
        """Check identifier uniqueness and return the document.

        :raises DuplicateIdError: if two stanzas share an identifier in the same scope
        :raises BuildError: if the builder was already finalized
        """
        self._check_open()
        seen: set[tuple[str, ...]] = set()
        stanzas = []
        for kind, tags in self._stanzas:
            stanza = Stanza(kind=kind, tags=tuple(tags))
            key = get_uniqueness_key(kind, stanza.id, self.id_scope)
            if key in seen:
                raise DuplicateIdError(
                    f"{stanza.id} is used by more than one [{kind}] stanza", stanza_id=stanza.id
                )
            seen.add(key)
            stanzas.append(stanza)
        self._finalized = True
        logger.debug("built document with %d stanzas", len(stanzas))
        return Document(header=tuple(self._header), stanzas=tuple(stanzas))
