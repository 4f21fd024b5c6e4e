"""Utilities for escaping and scanning OBO text."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

__all__ = [
    "OBO_ESCAPE",
    "OBO_ESCAPE_QUOTED",
    "OBO_ESCAPE_SLIM",
    "OBO_UNESCAPE",
    "find_unescaped",
    "get_first_nonescaped_quote",
    "has_unbalanced_quote",
    "obo_escape",
    "obo_escape_quoted",
    "obo_escape_slim",
    "obo_unescape",
    "split_unescaped",
    "split_whitespace",
]

logger = logging.getLogger(__name__)

#: Recognized escape sequences, mapping the character after the
#: backslash to the character it stands for
OBO_UNESCAPE = {
    ":": ":",
    "!": "!",
    '"': '"',
    "\\": "\\",
    "n": "\n",
    "t": "\t",
    "W": " ",
    ",": ",",
    "(": "(",
    ")": ")",
    "[": "[",
    "]": "]",
    "{": "{",
    "}": "}",
}

OBO_ESCAPE_QUOTED = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t"}
OBO_ESCAPE_SLIM = {**OBO_ESCAPE_QUOTED, "!": "\\!", "{": "\\{", "}": "\\}"}
OBO_ESCAPE = {**OBO_ESCAPE_SLIM, " ": "\\W", ",": "\\,", "[": "\\[", "]": "\\]"}


def _escape(string: str, table: dict[str, str]) -> str:
    return "".join(table.get(character, character) for character in string)


def obo_escape(string: str) -> str:
    """Escape an identifier so it stays a single token."""
    return _escape(string, OBO_ESCAPE)


def obo_escape_slim(string: str) -> str:
    """Escape unquoted free text."""
    return _escape(string, OBO_ESCAPE_SLIM)


def obo_escape_quoted(string: str) -> str:
    """Escape text that goes between double quotes."""
    return _escape(string, OBO_ESCAPE_QUOTED)


def obo_unescape(string: str) -> str:
    """Resolve escape sequences, keeping unrecognized ones literally."""
    if "\\" not in string:
        return string
    rv = []
    i = 0
    while i < len(string):
        character = string[i]
        if character == "\\" and i + 1 < len(string):
            nxt = string[i + 1]
            if nxt in OBO_UNESCAPE:
                rv.append(OBO_UNESCAPE[nxt])
            else:
                logger.debug("keeping unrecognized escape \\%s in %s", nxt, string)
                rv.append(character + nxt)
            i += 2
        else:
            rv.append(character)
            i += 1
    return "".join(rv)


def _iter_unescaped(s: str, start: int = 0) -> Iterable[tuple[int, str]]:
    """Iterate over positions and characters, skipping escape sequences."""
    i = start
    while i < len(s):
        if s[i] == "\\":
            i += 2
            continue
        yield i, s[i]
        i += 1


def get_first_nonescaped_quote(s: str, start: int = 0) -> int | None:
    """Get the position of the first non-escaped quote."""
    for i, character in _iter_unescaped(s, start):
        if character == '"':
            return i
    return None


def find_unescaped(
    s: str, characters: Collection[str], *, start: int = 0, respect_quotes: bool = True
) -> int | None:
    """Get the position of the first non-escaped character from the collection.

    :param s: The string to search
    :param characters: The characters to look for
    :param start: The position to start from
    :param respect_quotes: If true, characters between double quotes are skipped
    :returns: The position of the first match, or None if there is none
    """
    in_quotes = False
    for i, character in _iter_unescaped(s, start):
        if respect_quotes and character == '"':
            in_quotes = not in_quotes
        elif not in_quotes and character in characters:
            return i
    return None


def has_unbalanced_quote(s: str) -> bool:
    """Check if the string has an odd number of non-escaped quotes."""
    return sum(character == '"' for _, character in _iter_unescaped(s)) % 2 == 1


def split_unescaped(s: str, separator: str = ",") -> list[str]:
    """Split on a separator that isn't escaped or between quotes."""
    rv = []
    start = 0
    while (i := find_unescaped(s, separator, start=start)) is not None:
        rv.append(s[start:i])
        start = i + 1
    rv.append(s[start:])
    return rv


def split_whitespace(s: str, maxsplit: int = -1) -> list[str]:
    """Split on non-escaped whitespace that isn't between quotes."""
    rv: list[str] = []
    s = s.strip()
    while s:
        if maxsplit >= 0 and len(rv) == maxsplit:
            rv.append(s)
            break
        i = find_unescaped(s, " \t")
        if i is None:
            rv.append(s)
            break
        rv.append(s[:i])
        s = s[i + 1 :].lstrip()
    return rv


def _bool_to_obo(v: bool) -> str:
    return "true" if v else "false"
