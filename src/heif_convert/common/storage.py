"""Reading sources and persisting encoded output.

Output is written to a temporary sibling and moved into place, so a failed
write never leaves a partial destination file.
"""

import os
import tempfile
from contextlib import suppress
from os import PathLike
from pathlib import Path

from loguru import logger

from .errors import OpenError, WriteError


def read_source(path: str | PathLike[str]) -> bytes:
    """Read a whole source file into memory.

    Raises:
        OpenError: If the file cannot be opened or read
    """
    source = Path(path)
    try:
        with open(source, "rb") as f:
            return f.read()
    except OSError as exc:
        raise OpenError(f"could not open file: {exc.strerror or exc}", path=source) from exc


def persist(data: bytes, dest: str | PathLike[str], *, mode: int = 0o644) -> Path:
    """Write encoded bytes to ``dest``, replacing any existing file.

    The destination directory must already exist.

    Returns:
        Destination path

    Raises:
        WriteError: If the directory is missing or the file cannot be written
    """
    target = Path(dest)
    directory = target.parent
    if not directory.is_dir():
        raise WriteError(f"output directory does not exist: {directory}", path=target)

    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=directory)
        with os.fdopen(fd, "wb") as f:
            _ = f.write(data)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, target)
    except OSError as exc:
        if tmp_name is not None:
            with suppress(FileNotFoundError):
                os.unlink(tmp_name)
        raise WriteError(f"could not save image: {exc.strerror or exc}", path=target) from exc

    logger.info(f"Image successfully written to {target}")
    return target
