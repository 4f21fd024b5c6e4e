"""OBO Readers."""

from __future__ import annotations

import codecs
import enum
import logging
from collections.abc import Iterable
from textwrap import dedent

from .grammar import parse_value, split_tag
from .lexer import BlankLine, HeaderLine, LineClassifier, LogicalLine, StanzaMarker, TagLine
from ..struct import Document, HeaderFrame, Stanza, Tag, get_uniqueness_key
from ...constants import DEFAULT_ID_SCOPE, IdScope, StanzaKind, check_id_scope
from ...errors import (
    DuplicateIdError,
    InvalidEncodingError,
    MalformedHeaderError,
    MalformedStanzaError,
    MissingRequiredTagError,
    OboError,
)

__all__ = [
    "ParserState",
    "StanzaParser",
    "from_lines",
    "from_str",
    "iterate_frames",
    "parse",
]

logger = logging.getLogger(__name__)


class ParserState(enum.Enum):
    """The states of the stanza parser."""

    BEFORE_HEADER = enum.auto()
    IN_HEADER = enum.auto()
    IN_STANZA = enum.auto()


class StanzaParser:
    """A state machine that consumes logical lines one at a time.

    Each stanza marker closes the stanza before it (if any) and opens a new one,
    so the parser can be driven incrementally without holding the whole document.
    """

    def __init__(self, *, id_scope: IdScope = DEFAULT_ID_SCOPE) -> None:
        """Instantiate the parser.

        :param id_scope: How identifier uniqueness is scoped. By default, two
            stanzas of the same kind and namespace can't share an identifier.
        """
        self.id_scope = check_id_scope({"id_scope": id_scope})
        self.state = ParserState.BEFORE_HEADER
        self._header: list[Tag] = []
        self._leading: list[str] = []
        self._seen: dict[tuple[str, ...], int | None] = {}
        self._marker: StanzaMarker | None = None
        self._marker_leading: tuple[str, ...] = ()
        self._tags: list[Tag] = []
        self._id: str | None = None

    @property
    def header(self) -> HeaderFrame:
        """Get the header tags read so far."""
        return HeaderFrame(tuple(self._header))

    @property
    def trailing(self) -> tuple[str, ...]:
        """Get the blank and comment-only lines that haven't been attached to anything."""
        return tuple(self._leading)

    def feed(self, line: LogicalLine) -> Stanza | None:
        """Consume a logical line.

        :param line: The next logical line
        :returns: The previous stanza, if the line is a stanza marker that closes it
        :raises OboError: if the line breaks the structure of the document
        """
        match line:
            case BlankLine():
                self._leading.extend(line.source)
                return None
            case StanzaMarker():
                rv = self._finalize() if self.state is ParserState.IN_STANZA else None
                self._open(line)
                return rv
            case HeaderLine() if self.state is not ParserState.IN_STANZA:
                self._header.append(self._parse_tag(line, header=True))
                self.state = ParserState.IN_HEADER
                return None
            case TagLine() if self.state is ParserState.IN_STANZA:
                self._add_tag(self._parse_tag(line))
                return None
            # the last two cases only happen when lines don't come from a LineClassifier
            case TagLine():
                raise MalformedHeaderError(
                    "tag line before any header tag or stanza", lineno=line.lineno, line=line.text
                )
            case _:
                raise MalformedStanzaError(
                    "header line inside a stanza", lineno=line.lineno, line=line.text
                )

    def close(self) -> Stanza | None:
        """Finalize the last open stanza at the end of the input."""
        if self.state is ParserState.IN_STANZA:
            rv = self._finalize()
            self.state = ParserState.IN_HEADER
            return rv
        return None

    def _open(self, line: StanzaMarker) -> None:
        self.state = ParserState.IN_STANZA
        self._marker = line
        self._marker_leading = tuple(self._leading)
        self._leading = []
        self._tags = []
        self._id = None

    def _parse_tag(self, line: LogicalLine, *, header: bool = False) -> Tag:
        parts = split_tag(line.text)
        if parts is None:
            error_cls = MalformedHeaderError if header else MalformedStanzaError
            raise error_cls(
                "expected a tag-value pair",
                lineno=line.lineno,
                stanza_id=self._id,
                line=line.text.strip(),
            )
        name, text = parts
        try:
            parsed = parse_value(name, text, node=self._id)
        except OboError as e:
            raise e.with_context(
                lineno=line.lineno, stanza_id=self._id, line=line.text.strip()
            ) from None
        rv = Tag(
            name=name,
            value=parsed.value,
            trailing_comment=parsed.trailing_comment,
            qualifiers=parsed.qualifiers,
            raw_value=parsed.raw_value,
            source=line.source,
            leading=tuple(self._leading),
            lineno=line.lineno,
        )
        self._leading = []
        return rv

    def _add_tag(self, tag: Tag) -> None:
        if tag.name == "id":
            identifier = tag.value.id  # type:ignore[union-attr]
            if self._id is not None:
                raise DuplicateIdError(
                    f"second id tag {identifier}", lineno=tag.lineno, stanza_id=self._id
                )
            self._id = identifier
        self._tags.append(tag)

    def _finalize(self) -> Stanza:
        if self._marker is None:  # pragma: no cover
            raise RuntimeError("no open stanza")
        kind: StanzaKind = self._marker.kind
        if self._id is None:
            raise MissingRequiredTagError(
                f"id in [{kind}] stanza", lineno=self._marker.lineno
            )
        key = get_uniqueness_key(kind, self._id, self.id_scope)
        if key in self._seen:
            raise DuplicateIdError(
                f"{self._id} was already used on line {self._seen[key]}",
                lineno=self._marker.lineno,
                stanza_id=self._id,
            )
        self._seen[key] = self._marker.lineno
        logger.debug("[%s] finalized %s stanza", self._id, kind)
        return Stanza(
            kind=kind,
            tags=tuple(self._tags),
            source=self._marker.source,
            leading=self._marker_leading,
            lineno=self._marker.lineno,
        )


def iterate_frames(
    lines: str | Iterable[str], *, id_scope: IdScope = DEFAULT_ID_SCOPE
) -> Iterable[HeaderFrame | Stanza]:
    """Stream a document, yielding its header first and then each stanza.

    :param lines: Either the full text or an iterable of physical lines, like an
        open file
    :param id_scope: How identifier uniqueness is scoped
    :yields: A :class:`HeaderFrame` as soon as the header is complete, then each
        :class:`Stanza` as soon as it's finalized
    """
    parser = StanzaParser(id_scope=id_scope)
    header_done = False
    for line in LineClassifier(lines):
        stanza = parser.feed(line)
        if not header_done and parser.state is ParserState.IN_STANZA:
            header_done = True
            yield parser.header
        if stanza is not None:
            yield stanza
    stanza = parser.close()
    if not header_done:
        yield parser.header
    if stanza is not None:
        yield stanza


def from_lines(lines: str | Iterable[str], *, id_scope: IdScope = DEFAULT_ID_SCOPE) -> Document:
    """Read a document from text or an iterable of physical lines.

    :raises OboError: on any structural error. No partial document is returned.
    """
    classifier = LineClassifier(lines)
    parser = StanzaParser(id_scope=id_scope)
    stanzas = []
    for line in classifier:
        if (stanza := parser.feed(line)) is not None:
            stanzas.append(stanza)
    if (stanza := parser.close()) is not None:
        stanzas.append(stanza)
    logger.debug("read %d header tags and %d stanzas", len(parser.header.tags), len(stanzas))
    return Document(
        header=parser.header.tags,
        stanzas=tuple(stanzas),
        trailing=parser.trailing,
        ends_with_newline=classifier.ends_with_newline,
    )


def parse(data: bytes | str, *, id_scope: IdScope = DEFAULT_ID_SCOPE) -> Document:
    """Read a document from UTF-8 encoded bytes or text.

    :param data: The complete input
    :param id_scope: How identifier uniqueness is scoped
    :returns: The document
    :raises OboError: on any structural error
    :raises InvalidEncodingError: if the bytes aren't valid UTF-8
    """
    if isinstance(data, bytes):
        data = _decode(data)
    return from_lines(data, id_scope=id_scope)


def _decode(data: bytes) -> str:
    if data.startswith(codecs.BOM_UTF8):
        data = data[len(codecs.BOM_UTF8) :]
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        lineno = data.count(b"\n", 0, e.start) + 1
        raise InvalidEncodingError(
            f"byte {data[e.start : e.end]!r} at position {e.start}", lineno=lineno
        ) from e


def from_str(text: str, *, id_scope: IdScope = DEFAULT_ID_SCOPE) -> Document:
    """Read a document from an indented string representation."""
    text = dedent(text).strip()
    return parse(text, id_scope=id_scope)
