"""A round-trip parser and serializer for the OBO flat file format."""

from . import errors  # noqa: F401
from .struct import values  # noqa: F401
from .struct import (  # noqa: F401
    Document,
    DocumentBuilder,
    HeaderFrame,
    Stanza,
    Tag,
    from_lines,
    from_str,
    iterate_frames,
    parse,
)
from .utils.io import from_obo_path, write_obo  # noqa: F401
from .version import get_version  # noqa: F401
