"""Conversion pipeline between HEIF-family containers and raster formats.

Every operation is a one-shot, synchronous unit of work: validate, read,
decode, check the decoded format, encode fully in memory, then persist.
Nothing is retried; failures surface as typed ``ConversionError``s.
"""

import os
from functools import cache
from os import PathLike
from pathlib import Path
from typing import Final

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .codecs.registry import CodecNotFoundError, CodecRegistry, default_registry
from .common.errors import DecodeError, EncodeError, UnexpectedFormatError, ValidationError
from .common.formats import RASTER_FORMATS, Compression, FormatTag
from .common.pixel_buffer import PixelBuffer
from .common.schemas import CodecParams, ConverterConfig
from .common.storage import persist, read_source
from .utils.profiling import timed

DEFAULT_JPEG_QUALITY: Final[int] = 90

PathArg = str | PathLike[str]


def _require_paths(**paths: PathArg | None) -> None:
    for name, value in paths.items():
        if value is None or not os.fspath(value):
            raise ValidationError(f"{name} must not be empty")


def _require_buffer(buffer: PixelBuffer | None) -> PixelBuffer:
    if buffer is None:
        raise ValidationError("image is nil")
    return buffer


def _raster_kind(kind: str | FormatTag) -> FormatTag:
    target = FormatTag.parse(kind)
    if target not in RASTER_FORMATS:
        raise ValidationError(f"unsupported raster format '{kind}', expected jpeg or png")
    return target


def _codec_params(quality: int | None) -> CodecParams:
    value = DEFAULT_JPEG_QUALITY if quality is None else quality
    try:
        return CodecParams(quality=value)
    except PydanticValidationError as exc:
        raise ValidationError(f"quality should be between 1 and 100, got {value!r}") from exc


class Converter:
    """
    Converts images between HEIF-family containers and JPEG/PNG.

    The registry and config are injected once; no other state is kept, so
    one converter may serve independent conversions on distinct paths.

    Example:
        converter = Converter()
        converter.to_raster("jpeg", "input.heic", "output.jpg", quality=80)
        converter.to_container("input.png", "output.heic")
    """

    def __init__(
        self,
        registry: CodecRegistry | None = None,
        config: ConverterConfig | None = None,
    ):
        self.registry: CodecRegistry = registry if registry is not None else default_registry()
        self.config: ConverterConfig = config if config is not None else ConverterConfig()

    # ------------------------------------------------------------------
    # Public conversions
    # ------------------------------------------------------------------

    @timed
    def to_raster(
        self,
        kind: str | FormatTag,
        source_path: PathArg,
        dest_path: PathArg,
        quality: int | None = None,
    ) -> None:
        """
        Convert a HEIF-family image to JPEG or PNG.

        Args:
            kind: Target raster format (jpeg/jpg or png)
            source_path: Path to the HEIF/HEIC/AVIF source
            dest_path: Path of the raster output
            quality: 1..100, used by JPEG (default 90), validated but ignored by PNG

        Raises:
            ValidationError: Empty path, unknown kind or quality outside [1, 100]
            OpenError: Source cannot be read
            DecodeError: Source does not decode
            UnexpectedFormatError: Source decodes to a format outside the accepted set
            EncodeError: Raster encoder failed
            WriteError: Destination cannot be written
        """
        _require_paths(source_path=source_path, dest_path=dest_path)
        target = _raster_kind(kind)
        params = _codec_params(quality)

        buffer, tag = self._load(source_path, accepted=self.config.accepted_source_tags)
        path = self._save(buffer, target, params, dest_path)
        logger.info(f"Image was {tag} format, written to {path}")

    def heif_to_jpeg(
        self,
        source_path: PathArg,
        dest_path: PathArg,
        quality: int = DEFAULT_JPEG_QUALITY,
    ) -> None:
        self.to_raster(FormatTag.JPEG, source_path, dest_path, quality)

    def heif_to_png(self, source_path: PathArg, dest_path: PathArg) -> None:
        self.to_raster(FormatTag.PNG, source_path, dest_path)

    @timed
    def to_container(self, source_path: PathArg, dest_path: PathArg) -> None:
        """
        Convert any decodable image to a HEIF-family container.

        Uses ``config.container_params`` (quality 100, lossless, HEVC by default).

        Raises:
            ValidationError: Empty path
            OpenError: Source cannot be read
            DecodeError: Source does not decode
            EncodeError: Container encoder failed
            WriteError: Destination cannot be written
        """
        _require_paths(source_path=source_path, dest_path=dest_path)

        buffer, tag = self._load(source_path)
        _ = self.save_as_container(buffer, tag, dest_path)

    # ------------------------------------------------------------------
    # In-memory helpers
    # ------------------------------------------------------------------

    def load_container_image(self, source_path: PathArg) -> PixelBuffer:
        """Decode a HEIF-family file, rejecting any other format."""
        _require_paths(source_path=source_path)

        buffer, _ = self._load(source_path, accepted=self.config.accepted_source_tags)
        return buffer

    def save_as_container(
        self,
        buffer: PixelBuffer | None,
        source_tag: FormatTag | str,
        dest_path: PathArg,
    ) -> Path:
        """Encode a buffer with the configured container parameters and persist it."""
        buffer = _require_buffer(buffer)
        if not source_tag:
            raise ValidationError("format is empty")
        _require_paths(dest_path=dest_path)

        params = self.config.container_params
        path = self._save(buffer, params.compression, params, dest_path)
        logger.info(f"Image was {source_tag} format, written to {path}")
        return path

    def save_as_jpeg(
        self,
        buffer: PixelBuffer | None,
        dest_path: PathArg,
        quality: int = DEFAULT_JPEG_QUALITY,
    ) -> Path:
        buffer = _require_buffer(buffer)
        _require_paths(dest_path=dest_path)
        params = _codec_params(quality)
        return self._save(buffer, FormatTag.JPEG, params, dest_path)

    def save_as_png(self, buffer: PixelBuffer | None, dest_path: PathArg) -> Path:
        buffer = _require_buffer(buffer)
        _require_paths(dest_path=dest_path)
        return self._save(buffer, FormatTag.PNG, CodecParams(), dest_path)

    # ------------------------------------------------------------------
    # Internal stages
    # ------------------------------------------------------------------

    def _load(
        self,
        source_path: PathArg,
        accepted: frozenset[FormatTag] | None = None,
    ) -> tuple[PixelBuffer, FormatTag]:
        data = read_source(source_path)

        try:
            buffer, tag = self.registry.decode(data)
        except DecodeError as exc:
            raise DecodeError(f"could not decode image: {exc.message}", path=source_path) from exc

        if accepted is not None and tag not in accepted:
            raise UnexpectedFormatError(tag, accepted, path=source_path)

        logger.debug(f"Decoded {source_path} as {tag} ({buffer.width}x{buffer.height} {buffer.mode})")
        return buffer, tag

    def _save(
        self,
        buffer: PixelBuffer,
        target: FormatTag | Compression,
        params: CodecParams,
        dest_path: PathArg,
    ) -> Path:
        try:
            if isinstance(target, Compression):
                adapter = self.registry.for_compression(target)
            else:
                adapter = self.registry.get(target)
        except CodecNotFoundError as exc:
            raise EncodeError(str(exc), path=dest_path) from exc

        # Encoding completes in memory before the destination is touched
        try:
            data = adapter.encode(buffer, params)
        except EncodeError as exc:
            raise EncodeError(exc.message, path=dest_path) from exc

        return persist(data, dest_path, mode=self.config.file_mode)


# ─────────────────────────────────────────────────────────────
# Module-level convenience API (shared default converter)
# ─────────────────────────────────────────────────────────────


@cache
def default_converter() -> Converter:
    return Converter()


def to_raster(
    kind: str | FormatTag,
    source_path: PathArg,
    dest_path: PathArg,
    quality: int | None = None,
) -> None:
    default_converter().to_raster(kind, source_path, dest_path, quality)


def to_container(source_path: PathArg, dest_path: PathArg) -> None:
    default_converter().to_container(source_path, dest_path)


def heif_to_jpeg(source_path: PathArg, dest_path: PathArg, quality: int = DEFAULT_JPEG_QUALITY) -> None:
    default_converter().heif_to_jpeg(source_path, dest_path, quality)


def heif_to_png(source_path: PathArg, dest_path: PathArg) -> None:
    default_converter().heif_to_png(source_path, dest_path)
