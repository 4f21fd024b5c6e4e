"""The grammar of OBO tag values.

Parsing turns the text after ``tag:`` into one of the variants of
:data:`oboflat.struct.values.RawValue`, splitting off trailing qualifiers
and comments along the way. Formatting is the structural inverse.
"""

from __future__ import annotations

import logging
import typing as t
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, NamedTuple

from curies.vocabulary import SynonymScope

from ..utils import (
    _bool_to_obo,
    find_unescaped,
    get_first_nonescaped_quote,
    has_unbalanced_quote,
    obo_escape,
    obo_escape_quoted,
    obo_escape_slim,
    obo_unescape,
    split_unescaped,
    split_whitespace,
)
from ..values import (
    Boolean,
    CrossReference,
    Identifier,
    IdentifierWithComment,
    PlainString,
    PropertyValue,
    Qualifier,
    QuotedDefinition,
    RawValue,
    Relationship,
    SubsetDef,
    Synonym,
    SynonymTypeDef,
    Xref,
)
from ...constants import (
    BOOLEAN_TAGS,
    IDENTIFIER_TAGS,
    LABELED_TAGS,
    QUOTED_TAGS,
    STRICT_IDENTIFIER_TAGS,
)
from ...errors import MalformedValueError, UnterminatedQuoteError

if TYPE_CHECKING:
    from ..struct import Tag

__all__ = [
    "ParsedValue",
    "coerce_value",
    "format_qualifiers",
    "format_tag",
    "format_value",
    "format_xrefs",
    "parse_value",
    "split_tag",
    "split_trailing_comment",
]

logger = logging.getLogger(__name__)

SYNONYM_SCOPES: frozenset[str] = frozenset(t.get_args(SynonymScope))


class ParsedValue(NamedTuple):
    """The parts of a tag's value."""

    #: The structured value
    value: RawValue
    #: The comment after ``!``, if it wasn't absorbed by the value
    trailing_comment: str | None
    #: Trailing modifiers between curly braces
    qualifiers: tuple[Qualifier, ...]
    #: The value text as it appeared, without qualifiers and comment
    raw_value: str


def split_tag(text: str) -> tuple[str, str] | None:
    """Split a line into its tag name and the rest, or return None if it's not a tag line."""
    i = find_unescaped(text, ":", respect_quotes=False)
    if i is None:
        return None
    name = text[:i].strip()
    if not name or any(character.isspace() for character in name):
        return None
    return name, text[i + 1 :]


def split_trailing_comment(text: str, *, quoted: bool = False) -> tuple[str, str | None]:
    """Split a value into the part before a trailing ``!`` comment and the comment.

    :param text: The value text
    :param quoted: Does the tag's grammar start with a quoted string? If so, an
        unbalanced quote is an error, otherwise quotes are ignored as a fallback.
    :returns: A pair of the value text and the comment, which is None if there's none
    :raises UnterminatedQuoteError: if the tag is quoted and a quote isn't closed
    """
    i = find_unescaped(text, "!")
    if i is None and has_unbalanced_quote(text):
        if quoted:
            raise UnterminatedQuoteError(text.strip())
        logger.debug("ignoring quotes to find comment in unbalanced value: %s", text)
        i = find_unescaped(text, "!", respect_quotes=False)
    if i is None:
        return text.strip(), None
    comment = text[i + 1 :].strip()
    return text[:i].strip(), comment or None


def _split_qualifiers(text: str) -> tuple[str, tuple[Qualifier, ...]]:
    if not text.endswith("}"):
        return text, ()
    opening = None
    start = 0
    while (i := find_unescaped(text, "{", start=start)) is not None:
        opening = i
        start = i + 1
    if not opening or not text[opening - 1].isspace():
        return text, ()
    qualifiers = _parse_qualifiers(text[opening + 1 : -1])
    if qualifiers is None:
        return text, ()
    return text[:opening].rstrip(), qualifiers


def _parse_qualifiers(inner: str) -> tuple[Qualifier, ...] | None:
    rv = []
    for part in split_unescaped(inner, ","):
        part = part.strip()
        i = find_unescaped(part, "=")
        if i is None:
            return None
        key, value = part[:i].strip(), part[i + 1 :].strip()
        if not key or any(character.isspace() for character in key):
            return None
        unquoted = _unquote(value)
        if unquoted is not None:
            rv.append(Qualifier(obo_unescape(key), unquoted))
        elif value and len(split_whitespace(value)) == 1 and '"' not in value:
            rv.append(Qualifier(obo_unescape(key), obo_unescape(value)))
        else:
            return None
    if not rv:
        return None
    return tuple(rv)


def _unquote(token: str) -> str | None:
    """Return the unescaped content of a token that is exactly one quoted string."""
    if not token.startswith('"'):
        return None
    if get_first_nonescaped_quote(token, 1) != len(token) - 1:
        return None
    return obo_unescape(token[1:-1])


def _quote_split(s: str) -> tuple[str, str]:
    """Split a value that starts with a quoted string into the unescaped string and the rest."""
    if not s.startswith('"'):
        raise MalformedValueError(f"'{s}' does not start with a quote")
    i = get_first_nonescaped_quote(s, 1)
    if i is None:
        raise UnterminatedQuoteError(s)
    return obo_unescape(s[1:i]), s[i + 1 :].strip()


def _chomp_xrefs(s: str) -> tuple[tuple[Xref, ...] | None, str]:
    if not s.startswith("["):
        return None, s
    end = find_unescaped(s, "]")
    if end is None:
        raise MalformedValueError(f"missing closing square bracket in {s}")
    xrefs = tuple(
        _parse_xref_entry(entry.strip())
        for entry in split_unescaped(s[1:end], ",")
        if entry.strip()
    )
    return xrefs, s[end + 1 :].strip()


def _parse_xref_entry(entry: str) -> Xref:
    parts = split_whitespace(entry, maxsplit=1)
    if len(parts) == 1:
        return Xref(obo_unescape(parts[0]))
    description = _unquote(parts[1])
    if description is None:
        logger.debug("xref has unquoted trailing text, keeping it in the identifier: %s", entry)
        return Xref(obo_unescape(entry))
    return Xref(obo_unescape(parts[0]), description)


def _parse_definition(s: str) -> QuotedDefinition:
    text, rest = _quote_split(s)
    xrefs, rest = _chomp_xrefs(rest)
    if rest:
        raise MalformedValueError(f"unexpected text after definition: {rest}")
    return QuotedDefinition(text, xrefs or ())


def _parse_synonym(s: str) -> Synonym:
    text, rest = _quote_split(s)
    i = find_unescaped(rest, "[")
    head, tail = (rest, "") if i is None else (rest[:i], rest[i:])
    tokens = split_whitespace(head)
    scope = None
    if tokens and tokens[0] in SYNONYM_SCOPES:
        scope = t.cast(SynonymScope, tokens.pop(0))
    synonym_type = obo_unescape(tokens.pop(0)) if tokens else None
    if tokens:
        raise MalformedValueError(f"unexpected text in synonym: {' '.join(tokens)}")
    xrefs, tail = _chomp_xrefs(tail)
    if tail:
        raise MalformedValueError(f"unexpected text after synonym: {tail}")
    return Synonym(text, scope, synonym_type, xrefs or ())


def _parse_boolean(tag: str, s: str, *, node: str | None) -> RawValue:
    if s == "true":
        return Boolean(True)
    if s == "false":
        return Boolean(False)
    logger.warning("[%s] boolean tag %s has non-boolean value: %s", node or "header", tag, s)
    return PlainString(obo_unescape(s))


def _parse_identifier(tag: str, s: str, comment: str | None) -> RawValue:
    tokens = split_whitespace(s)
    if len(tokens) == 1:
        identifier = obo_unescape(tokens[0])
        if comment is None:
            return Identifier(identifier)
        return IdentifierWithComment(identifier, comment)
    if tag in STRICT_IDENTIFIER_TAGS:
        raise MalformedValueError(f"{tag} needs exactly one identifier, got: {s!r}")
    return PlainString(obo_unescape(s))


def _parse_relationship(s: str, comment: str | None) -> Relationship:
    tokens = split_whitespace(s)
    if len(tokens) != 2:
        raise MalformedValueError(f"relationship needs a typedef and a target, got: {s!r}")
    return Relationship(obo_unescape(tokens[0]), obo_unescape(tokens[1]), comment)


def _parse_intersection_of(s: str, comment: str | None) -> RawValue:
    tokens = split_whitespace(s)
    if len(tokens) == 2:
        return Relationship(obo_unescape(tokens[0]), obo_unescape(tokens[1]), comment)
    return _parse_identifier("intersection_of", s, comment)


def _parse_xref(s: str) -> RawValue:
    parts = split_whitespace(s, maxsplit=1)
    if len(parts) == 1:
        return CrossReference(Xref(obo_unescape(parts[0])))
    if len(parts) == 2 and (description := _unquote(parts[1])) is not None:
        return CrossReference(Xref(obo_unescape(parts[0]), description))
    return PlainString(obo_unescape(s))


def _parse_subsetdef(s: str) -> RawValue:
    parts = split_whitespace(s, maxsplit=1)
    if len(parts) == 2 and (description := _unquote(parts[1])) is not None:
        return SubsetDef(obo_unescape(parts[0]), description)
    return PlainString(obo_unescape(s))


def _parse_synonymtypedef(s: str) -> RawValue:
    tokens = split_whitespace(s)
    if len(tokens) in {2, 3} and (description := _unquote(tokens[1])) is not None:
        if len(tokens) == 2:
            return SynonymTypeDef(obo_unescape(tokens[0]), description)
        if tokens[2] in SYNONYM_SCOPES:
            return SynonymTypeDef(
                obo_unescape(tokens[0]), description, t.cast(SynonymScope, tokens[2])
            )
    return PlainString(obo_unescape(s))


def _parse_property_value(s: str) -> RawValue:
    tokens = split_whitespace(s)
    if len(tokens) not in {2, 3}:
        return PlainString(obo_unescape(s))
    datatype = obo_unescape(tokens[2]) if len(tokens) == 3 else None
    relation_id = obo_unescape(tokens[0])
    if (literal := _unquote(tokens[1])) is not None:
        return PropertyValue(relation_id, literal, datatype, quoted=True)
    if '"' in tokens[1]:
        return PlainString(obo_unescape(s))
    return PropertyValue(relation_id, obo_unescape(tokens[1]), datatype)


def _dispatch(tag: str, s: str, comment: str | None, *, node: str | None) -> RawValue:
    """Parse a value's text (without qualifiers and comment) based on the tag name."""
    if tag in BOOLEAN_TAGS:
        return _parse_boolean(tag, s, node=node)
    if tag in IDENTIFIER_TAGS:
        if not s and tag not in STRICT_IDENTIFIER_TAGS:
            return PlainString("")
        return _parse_identifier(tag, s, comment)
    match tag:
        case "def":
            return _parse_definition(s)
        case "synonym":
            return _parse_synonym(s)
        case "xref":
            return _parse_xref(s) if s else PlainString("")
        case "relationship":
            return _parse_relationship(s, comment)
        case "intersection_of":
            return _parse_intersection_of(s, comment)
        case "subsetdef":
            return _parse_subsetdef(s)
        case "synonymtypedef":
            return _parse_synonymtypedef(s)
        case "property_value":
            return _parse_property_value(s)
        case _:
            return PlainString(obo_unescape(s))


def _absorbs_comment(value: RawValue) -> bool:
    return isinstance(value, IdentifierWithComment | Relationship)


def parse_value(tag: str, text: str, *, node: str | None = None) -> ParsedValue:
    """Parse the text after ``tag:`` into a structured value.

    :param tag: The name of the tag, which decides the grammar
    :param text: The text after the colon
    :param node: The identifier of the stanza, used for logging
    :returns: The structured value, its trailing comment and qualifiers, and the
        value text as it appeared
    :raises MalformedValueError: if a strictly enforced grammar doesn't match
    :raises UnterminatedQuoteError: if a quoted string isn't closed
    """
    value_text, comment = split_trailing_comment(text, quoted=tag in QUOTED_TAGS)
    value_text, qualifiers = _split_qualifiers(value_text)
    value = _dispatch(tag, value_text, comment, node=node)
    if _absorbs_comment(value):
        comment = None
    return ParsedValue(value, comment, qualifiers, value_text)


def coerce_value(tag: str, value: RawValue | str | bool) -> RawValue:
    """Turn a programmatic value into a structured value for the given tag.

    Strings are taken literally, i.e., they are not unescaped.
    """
    if isinstance(value, bool):
        return Boolean(value)
    if not isinstance(value, str):
        if isinstance(value, RawValue):
            return value
        raise TypeError(f"can't use {type(value)} as the value of {tag}: {value}")
    if tag in BOOLEAN_TAGS and value in {"true", "false"}:
        return Boolean(value == "true")
    if tag in IDENTIFIER_TAGS:
        return Identifier(value)
    match tag:
        case "relationship":
            parts = value.split()
            if len(parts) != 2:
                raise MalformedValueError(
                    f"relationship needs a typedef and a target, got: {value!r}"
                )
            return Relationship(parts[0], parts[1])
        case "def":
            return QuotedDefinition(value)
        case "synonym":
            return Synonym(value)
        case "xref":
            return CrossReference(Xref(value))
        case _:
            return PlainString(value)


def format_xref(xref: Xref) -> str:
    """Format a cross-reference."""
    if xref.description is None:
        return obo_escape(xref.id)
    return f'{obo_escape(xref.id)} "{obo_escape_quoted(xref.description)}"'


def format_xrefs(xrefs: Sequence[Xref]) -> str:
    """Format a cross-reference list, including its square brackets."""
    return "[" + ", ".join(format_xref(xref) for xref in xrefs) + "]"


def format_qualifiers(qualifiers: Sequence[Qualifier]) -> str:
    """Format trailing modifiers, including their curly braces."""
    inner = ", ".join(
        f'{obo_escape(qualifier.key)}="{obo_escape_quoted(qualifier.value)}"'
        for qualifier in qualifiers
    )
    return "{" + inner + "}"


def format_value(value: RawValue) -> str:
    """Format a structured value canonically, without comment or qualifiers."""
    match value:
        case PlainString(s):
            return obo_escape_slim(s)
        case QuotedDefinition(text, xrefs):
            return f'"{obo_escape_quoted(text)}" {format_xrefs(xrefs)}'
        case Identifier(identifier) | IdentifierWithComment(identifier, _):
            return obo_escape(identifier)
        case Relationship(typedef_id, target_id, _):
            return f"{obo_escape(typedef_id)} {obo_escape(target_id)}"
        case Boolean(b):
            return _bool_to_obo(b)
        case Synonym(text, scope, synonym_type, xrefs):
            rv = f'"{obo_escape_quoted(text)}"'
            if scope is not None:
                rv += f" {scope}"
            if synonym_type is not None:
                rv += f" {obo_escape(synonym_type)}"
            return f"{rv} {format_xrefs(xrefs)}"
        case CrossReference(xref):
            return format_xref(xref)
        case SubsetDef(identifier, description):
            return f'{obo_escape(identifier)} "{obo_escape_quoted(description)}"'
        case SynonymTypeDef(identifier, description, scope):
            rv = f'{obo_escape(identifier)} "{obo_escape_quoted(description)}"'
            if scope is not None:
                rv += f" {scope}"
            return rv
        case PropertyValue(relation_id, literal, datatype, quoted):
            if quoted:
                rv = f'{obo_escape(relation_id)} "{obo_escape_quoted(literal)}"'
            else:
                rv = f"{obo_escape(relation_id)} {obo_escape(literal)}"
            if datatype is not None:
                rv += f" {obo_escape(datatype)}"
            return rv
    raise TypeError(f"unhandled value: {value}")


#: Variants whose source spelling is reused when it still parses to the same value
_SOURCE_SPELLED = (
    PlainString,
    Identifier,
    IdentifierWithComment,
    Relationship,
    Boolean,
    CrossReference,
    SubsetDef,
    SynonymTypeDef,
    PropertyValue,
    QuotedDefinition,
    Synonym,
)


def _format_value_text(tag: Tag) -> str:
    if tag.raw_value is not None and isinstance(tag.value, _SOURCE_SPELLED):
        comment = _get_value_comment(tag.value)
        try:
            reparsed = _dispatch(tag.name, tag.raw_value, comment, node=None)
        except (MalformedValueError, UnterminatedQuoteError):
            reparsed = None
        if reparsed == tag.value:
            bracketed = tag.raw_value.endswith("]")
            if isinstance(tag.value, QuotedDefinition | Synonym) and not bracketed:
                # the xref list is always written, even when empty
                return f"{tag.raw_value} []"
            return tag.raw_value
    return format_value(tag.value)


def _get_value_comment(value: RawValue) -> str | None:
    match value:
        case IdentifierWithComment(_, comment):
            return comment
        case Relationship(_, _, comment):
            return comment
    return None


def _get_target(value: RawValue) -> str | None:
    match value:
        case Identifier(identifier) | IdentifierWithComment(identifier, _):
            return identifier
        case Relationship(_, target_id, _):
            return target_id
    return None


def _get_comment(
    tag: Tag, *, labels: Mapping[str, str] | None, drop_comments: bool
) -> str | None:
    if tag.name in LABELED_TAGS and (target := _get_target(tag.value)) is not None:
        if drop_comments:
            return None
        if labels is not None:
            return labels.get(target)
    return _get_value_comment(tag.value) or tag.trailing_comment


def format_tag(
    tag: Tag, *, labels: Mapping[str, str] | None = None, drop_comments: bool = False
) -> str:
    """Format a tag as a single OBO line.

    :param tag: The tag to format
    :param labels: If given, comments after identifiers are regenerated from this
        mapping of identifiers to labels, and dropped for unknown identifiers
    :param drop_comments: If true, comments after identifiers are dropped
    :returns: A line like ``is_a: MS:1000548 ! sample attribute``
    """
    value_text = _format_value_text(tag)
    rv = f"{tag.name}: {value_text}" if value_text else f"{tag.name}:"
    if tag.qualifiers:
        rv += f" {format_qualifiers(tag.qualifiers)}"
    comment = _get_comment(tag, labels=labels, drop_comments=drop_comments)
    if comment:
        rv += f" ! {comment}"
    return rv
