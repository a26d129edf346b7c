"""Error taxonomy for conversion and inspection operations.

Every error carries the stage it was raised in and, where known, the path
being processed, so a caller can decide whether to retry, report or abort.
"""

from collections.abc import Iterable
from os import PathLike
from typing import ClassVar

from typing_extensions import override

from .formats import FormatTag


class ConversionError(Exception):
    """Base class for all errors surfaced by heif_convert."""

    stage: ClassVar[str] = "convert"

    def __init__(self, message: str, *, path: str | PathLike[str] | None = None):
        self.message: str = message
        self.path: str | None = str(path) if path is not None else None
        super().__init__(self.message)

    @override
    def __str__(self) -> str:
        where = f" ({self.path})" if self.path else ""
        return f"[{self.stage}] {self.message}{where}"


class ValidationError(ConversionError):
    """Caller error detected before any I/O (empty path, bad quality, bad kind)."""

    stage: ClassVar[str] = "validate"


class OpenError(ConversionError):
    """Source could not be read, or is not a valid container."""

    stage: ClassVar[str] = "open"


class DecodeError(ConversionError):
    """Bytes do not parse as any known or expected format."""

    stage: ClassVar[str] = "decode"


class UnexpectedFormatError(ConversionError):
    """Decode succeeded but produced a format the operation does not accept."""

    stage: ClassVar[str] = "validate-format"

    def __init__(
        self,
        actual: FormatTag,
        accepted: Iterable[FormatTag],
        *,
        path: str | PathLike[str] | None = None,
    ):
        self.actual: FormatTag = actual
        self.accepted: frozenset[FormatTag] = frozenset(accepted)
        expected = ", ".join(sorted(self.accepted))
        super().__init__(
            f"image is in {actual} format, expected one of: {expected}",
            path=path,
        )


class EncodeError(ConversionError):
    """Codec rejected the parameters or failed internally."""

    stage: ClassVar[str] = "encode"


class WriteError(ConversionError):
    """Destination could not be created or written."""

    stage: ClassVar[str] = "write"
