"""OBO Flat file format."""

from .reader import from_lines, from_str, iterate_frames, parse

__all__ = [
    "from_lines",
    "from_str",
    "iterate_frames",
    "parse",
]
