"""I/O utilities."""

import gzip
import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

import pystow
from tqdm.auto import tqdm
from typing_extensions import Unpack

from ..constants import (
    DEFAULT_ID_SCOPE,
    IdScope,
    SerializeKwargs,
    check_id_scope,
    check_should_use_strict,
)
from ..errors import InvalidEncodingError
from ..struct.obo.reader import from_lines
from ..struct.struct import Document

__all__ = [
    "from_obo_path",
    "get_id_scope",
    "safe_open",
    "write_obo",
]

logger = logging.getLogger(__name__)


@contextmanager
def safe_open(path: str | Path, read: bool) -> Generator[TextIO, None, None]:
    """Safely open a file for reading or writing text, gzipped if it ends with ``.gz``.

    Newlines are not translated, so carriage returns survive a strict round trip.
    """
    path = Path(path).expanduser().resolve()
    mode = "rt" if read else "wt"
    if path.suffix.endswith(".gz"):
        with gzip.open(path, mode=mode, encoding="utf-8", newline="") as file:
            yield file  # type:ignore[misc]
    else:
        with open(path, mode=mode, encoding="utf-8", newline="") as file:
            yield file


def get_id_scope(id_scope: IdScope | None = None) -> IdScope:
    """Get the identifier scope, falling back to the user's configuration.

    The configuration can be set with the ``OBOFLAT_ID_SCOPE`` environment
    variable or in ``~/.config/oboflat.ini``.
    """
    value = pystow.get_config("oboflat", "id_scope", passthrough=id_scope, default=DEFAULT_ID_SCOPE)
    return check_id_scope({"id_scope": value})


def from_obo_path(
    path: str | Path,
    *,
    id_scope: IdScope | None = None,
    use_tqdm: bool = False,
) -> Document:
    """Read a document from a plain or gzipped OBO file."""
    id_scope = get_id_scope(id_scope)
    logger.info("parsing OBO from %s", path)
    with safe_open(path, read=True) as file:
        lines = tqdm(
            file,
            unit_scale=True,
            unit="line",
            desc=f"parsing {Path(path).name}",
            disable=not use_tqdm,
            leave=False,
        )
        try:
            document = from_lines(lines, id_scope=id_scope)
        except UnicodeDecodeError as e:
            raise InvalidEncodingError(f"in {path}: {e.reason}") from e
    logger.info("parsed %d stanzas from %s", len(document.stanzas), path)
    return document


def write_obo(
    document: Document,
    path: str | Path,
    *,
    use_tqdm: bool = False,
    **kwargs: Unpack[SerializeKwargs],
) -> None:
    """Write a document to a plain or gzipped OBO file.

    :param document: The document to write
    :param path: The output path. Output is gzipped if it ends with ``.gz``.
    :param use_tqdm: Should a progress bar be shown?
    :param kwargs: Serialization options, see :meth:`Document.to_str`
    """
    # strict output decides its own final newline
    if check_should_use_strict(kwargs) or not use_tqdm:
        with safe_open(path, read=False) as file:
            document.write_obo(file, **kwargs)
        return
    lines = tqdm(
        document.iterate_obo_lines(**kwargs),
        desc=f"writing {Path(path).name}",
        unit_scale=True,
        unit="line",
    )
    with safe_open(path, read=False) as file:
        for line in lines:
            print(line, file=file)
