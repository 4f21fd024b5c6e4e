"""Errors raised while parsing and building OBO documents."""

from __future__ import annotations

from typing import ClassVar

import click
from typing_extensions import Self

__all__ = [
    "BuildError",
    "DuplicateIdError",
    "InvalidEncodingError",
    "MalformedHeaderError",
    "MalformedStanzaError",
    "MalformedValueError",
    "MissingRequiredTagError",
    "OboError",
    "ParseError",
    "UnterminatedContinuationError",
    "UnterminatedQuoteError",
]


class OboError(ValueError):
    """The base class for errors in oboflat."""

    message: ClassVar[str] = "invalid OBO"

    def __init__(
        self,
        text: str | None = None,
        *,
        lineno: int | None = None,
        stanza_id: str | None = None,
        line: str | None = None,
    ) -> None:
        """Initialize the error.

        :param text: Additional details, like the offending value
        :param lineno: The 1-based line number where the error happened
        :param stanza_id: The identifier of the stanza being parsed, if known
        :param line: The logical line where the error happened
        """
        super().__init__(text)
        self.text = text
        self.lineno = lineno
        self.stanza_id = stanza_id
        self.line = line

    def with_context(
        self,
        *,
        lineno: int | None = None,
        stanza_id: str | None = None,
        line: str | None = None,
    ) -> Self:
        """Fill in context that was not known where the error was raised."""
        if self.lineno is None:
            self.lineno = lineno
        if self.stanza_id is None:
            self.stanza_id = stanza_id
        if self.line is None:
            self.line = line
        return self

    def __str__(self) -> str:
        s = ""
        if self.lineno is not None:
            s += f"line {self.lineno}: "
        if self.stanza_id:
            s += f"[{self.stanza_id}] "
        s += self.message
        if self.text:
            s += f" {click.style(self.text, fg='cyan')}"
        if self.line and self.line != self.text:
            s += f" in {click.style(self.line, fg='yellow')}"
        return s


class ParseError(OboError):
    """Raised when an OBO document can't be parsed."""

    message = "could not parse"


class BuildError(OboError):
    """Raised when a document builder is misused."""

    message = "could not build document"


class MalformedHeaderError(ParseError):
    """Raised on a header line that isn't a tag-value pair."""

    message = "malformed header line"


class MalformedStanzaError(ParseError):
    """Raised on a stanza marker or stanza line that can't be understood."""

    message = "malformed stanza"


class MissingRequiredTagError(ParseError):
    """Raised on a stanza that is finalized without an ``id:`` tag."""

    message = "missing required tag"


class DuplicateIdError(ParseError, BuildError):
    """Raised on a stanza with two ``id:`` tags or two stanzas that share an identifier."""

    message = "duplicate identifier"


class MalformedValueError(ParseError):
    """Raised on a value whose grammar is strictly enforced and doesn't match."""

    message = "malformed value"


class UnterminatedQuoteError(ParseError):
    """Raised on a quoted string without a closing quote before the end of the line."""

    message = "unterminated quote"


class InvalidEncodingError(ParseError):
    """Raised on input bytes that aren't valid UTF-8."""

    message = "invalid UTF-8"


class UnterminatedContinuationError(ParseError):
    """Raised when the input ends in the middle of a continued line."""

    message = "input ended in a continued line"
