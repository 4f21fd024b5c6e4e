"""Data structures for OBO."""

from .builder import DocumentBuilder  # noqa: F401
from .obo import from_lines, from_str, iterate_frames, parse  # noqa: F401
from .struct import Document, HeaderFrame, Stanza, Tag  # noqa: F401
