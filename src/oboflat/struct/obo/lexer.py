"""Split OBO text into classified logical lines."""

from __future__ import annotations

import logging
import re
import typing as t
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from ...constants import STANZA_KINDS, StanzaKind
from ...errors import MalformedStanzaError, UnterminatedContinuationError

__all__ = [
    "BlankLine",
    "HeaderLine",
    "LineClassifier",
    "LogicalLine",
    "StanzaMarker",
    "TagLine",
    "iter_physical_lines",
]

logger = logging.getLogger(__name__)

STANZA_MARKER = re.compile(r"^\[([^\]]*)\]\s*(?:!.*)?$")


@dataclass(frozen=True)
class LogicalLine:
    """A line after continuations have been joined."""

    #: The 1-based number of the first physical line
    lineno: int
    #: The joined text, without the trailing newline
    text: str
    #: The physical lines this logical line was built from, exactly as they appeared
    source: tuple[str, ...]


@dataclass(frozen=True)
class HeaderLine(LogicalLine):
    """A non-blank line before the first stanza marker."""


@dataclass(frozen=True)
class TagLine(LogicalLine):
    """A non-blank line inside a stanza."""


@dataclass(frozen=True)
class BlankLine(LogicalLine):
    """An empty line or a line that only has a comment."""


@dataclass(frozen=True)
class StanzaMarker(LogicalLine):
    """A line like ``[Term]`` that opens a new stanza."""

    kind: StanzaKind


def iter_physical_lines(text: str) -> list[str]:
    """Split text into physical lines, keeping the newlines."""
    parts = text.split("\n")
    rv = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        rv.append(parts[-1])
    return rv


def _is_continued(content: str) -> bool:
    content = content.rstrip("\r")
    n_backslashes = len(content) - len(content.rstrip("\\"))
    return n_backslashes % 2 == 1


def _join(source: list[str]) -> str:
    pieces = [piece.rstrip("\r")[:-1] for piece in source[:-1]]
    pieces.append(source[-1].rstrip("\r"))
    return " ".join(pieces)


class LineClassifier:
    """Lazily turns physical lines into logical lines.

    A physical line that ends in a non-escaped backslash is joined with the next
    one, the backslash and newline being replaced by a single space. Lines before
    the first stanza marker are header lines, the ones after are tag lines.
    """

    def __init__(self, lines: str | Iterable[str]) -> None:
        """Instantiate the classifier.

        :param lines: Either the full text or an iterable of physical lines, like an
            open file
        """
        if isinstance(lines, str):
            lines = iter_physical_lines(lines)
        self._lines = lines
        self._in_header = True
        #: Did the last physical line end with a newline? Updated during iteration.
        self.ends_with_newline = False

    def __iter__(self) -> Iterator[LogicalLine]:
        buffer: list[str] = []
        start = 0
        for lineno, physical in enumerate(self._lines, start=1):
            self.ends_with_newline = physical.endswith("\n")
            content = physical[:-1] if self.ends_with_newline else physical
            if not buffer:
                start = lineno
            buffer.append(content)
            if _is_continued(content):
                continue
            yield self._classify(start, buffer)
            buffer = []
        if buffer:
            raise UnterminatedContinuationError(
                buffer[-1].strip(), lineno=start, line=_join(buffer).strip()
            )

    def _classify(self, lineno: int, buffer: list[str]) -> LogicalLine:
        text = _join(buffer)
        source = tuple(buffer)
        stripped = text.strip()
        if not stripped or stripped.startswith("!"):
            return BlankLine(lineno, text, source)
        if stripped.startswith("["):
            match = STANZA_MARKER.match(stripped)
            if match is None:
                raise MalformedStanzaError(stripped, lineno=lineno, line=text)
            kind = match.group(1).strip()
            if kind not in STANZA_KINDS:
                raise MalformedStanzaError(f"unknown stanza kind [{kind}]", lineno=lineno)
            self._in_header = False
            return StanzaMarker(lineno, text, source, t.cast(StanzaKind, kind))
        if self._in_header:
            return HeaderLine(lineno, text, source)
        return TagLine(lineno, text, source)
