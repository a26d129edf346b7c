"""Container inspector - low-level access to HEIF-family containers.

Unlike the conversion pipeline, the inspector does no format dispatch: it
parses the container's own item structure, resolves the primary image and
decodes it with the codec matching the container's brand.
"""

import os
from enum import StrEnum
from os import PathLike
from pathlib import Path
from types import TracebackType
from typing import ClassVar, Self

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ..codecs.registry import CodecNotFoundError, CodecRegistry, default_registry
from ..common.errors import DecodeError, EncodeError, OpenError, ValidationError
from ..common.formats import CONTAINER_FAMILY, FormatTag
from ..common.pixel_buffer import PixelBuffer
from ..common.schemas import CodecParams, ConverterConfig, DecodeOptions
from ..common.storage import persist, read_source
from ..utils.profiling import timed
from .boxes import BoxFormatError, ContainerInfo, parse_container


class ImageHandle:
    """Geometry and on-demand decoding of one top-level image."""

    def __init__(self, container: "HeifContainer", item_id: int, item_type: str):
        self._container: HeifContainer = container
        self.item_id: int = item_id
        self.item_type: str = item_type

    @property
    def size(self) -> tuple[int, int] | None:
        """(width, height) declared by the image's ``ispe`` property."""
        return self._container.info.image_sizes.get(self.item_id)

    @property
    def width(self) -> int | None:
        size = self.size
        return size[0] if size else None

    @property
    def height(self) -> int | None:
        size = self.size
        return size[1] if size else None

    @property
    def is_primary(self) -> bool:
        return self._container.primary_image_id() == self.item_id

    def decode(self, options: DecodeOptions | None = None) -> PixelBuffer:
        """Decode this image into a PixelBuffer in the requested color model."""
        return self._container.decode_image(self.item_id, options or DecodeOptions())

    def __repr__(self) -> str:
        return f"ImageHandle(item_id={self.item_id}, type={self.item_type!r}, size={self.size})"


class HeifContainer:
    """
    An opened HEIF/HEIC/AVIF container.

    Use as a context manager; the held bytes are released on exit and any
    later access raises ``OpenError``.

    Example:
        with HeifContainer.open("image.heic") as container:
            handle = container.primary_image_handle()
            if handle is not None:
                buffer = handle.decode()
    """

    def __init__(
        self,
        data: bytes,
        info: ContainerInfo,
        *,
        path: str | PathLike[str] | None = None,
        registry: CodecRegistry | None = None,
    ):
        self._data: bytes | None = data
        self._info: ContainerInfo = info
        self.path: str | None = str(path) if path is not None else None
        self.format_tag: FormatTag = FormatTag.from_brands(info.major_brand, info.compatible_brands)
        self._registry: CodecRegistry = registry if registry is not None else default_registry()

    @classmethod
    def open(
        cls,
        path: str | PathLike[str],
        *,
        registry: CodecRegistry | None = None,
    ) -> "HeifContainer":
        """
        Read and parse a container file.

        Raises:
            OpenError: If the file is unreadable or not a valid container
        """
        return cls.from_bytes(read_source(path), path=path, registry=registry)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        *,
        path: str | PathLike[str] | None = None,
        registry: CodecRegistry | None = None,
    ) -> "HeifContainer":
        try:
            info = parse_container(data)
        except BoxFormatError as exc:
            raise OpenError(f"Could not read HEIF container: {exc}", path=path) from exc

        tag = FormatTag.from_brands(info.major_brand, info.compatible_brands)
        if tag not in CONTAINER_FAMILY:
            raise OpenError(f"unsupported container brand '{info.major_brand}'", path=path)

        top_level = info.top_level_item_ids()
        if info.primary_item_id is not None and info.primary_item_id not in top_level:
            raise OpenError(
                f"primary item {info.primary_item_id} is not a top-level image",
                path=path,
            )

        return cls(data, info, path=path, registry=registry)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._data is None

    def close(self) -> None:
        self._data = None

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _require_open(self) -> bytes:
        if self._data is None:
            raise OpenError("container is closed", path=self.path)
        return self._data

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def info(self) -> ContainerInfo:
        _ = self._require_open()
        return self._info

    @property
    def brand(self) -> str:
        return self.info.major_brand

    def top_level_image_ids(self) -> tuple[int, ...]:
        return self.info.top_level_item_ids()

    def primary_image_id(self) -> int | None:
        return self.info.primary_item_id

    def image_handle(self, item_id: int) -> ImageHandle:
        if item_id not in self.top_level_image_ids():
            raise ValidationError(f"no top-level image with ID {item_id}", path=self.path)
        item = self.info.item(item_id)
        return ImageHandle(self, item_id, item.item_type if item else "")

    def primary_image_handle(self) -> ImageHandle | None:
        primary_id = self.primary_image_id()
        if primary_id is None:
            return None
        return self.image_handle(primary_id)

    def decode_image(self, item_id: int, options: DecodeOptions) -> PixelBuffer:
        """
        Decode one top-level image.

        Only the primary image is decodable; multi-image extraction is not supported.

        Raises:
            DecodeError: Not the primary image, or the codec failed
        """
        data = self._require_open()
        if item_id != self.primary_image_id():
            raise DecodeError(f"only the primary image can be decoded, not item {item_id}", path=self.path)

        try:
            adapter = self._registry.get(self.format_tag)
        except CodecNotFoundError as exc:
            raise DecodeError(str(exc), path=self.path) from exc

        try:
            buffer, _ = adapter.decode(data)
        except DecodeError as exc:
            raise DecodeError(exc.message, path=self.path) from exc

        mode = options.target_mode(buffer.has_alpha)
        return buffer.convert(mode) if mode else buffer


# ---------------------------------------------------------------------------
# Low-level extraction
# ---------------------------------------------------------------------------


class InspectionState(StrEnum):
    INSPECTED = "inspected"
    DECODED = "decoded"


class InspectionReport(BaseModel):
    """Outcome of ``inspect_and_extract_primary``."""

    source_path: str
    format: FormatTag
    image_ids: list[int] = Field(default_factory=list)
    primary_id: int | None = None
    width: int | None = None
    height: int | None = None
    output_path: str | None = None
    state: InspectionState = InspectionState.INSPECTED

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


def lowlevel_output_path(source_path: str | PathLike[str], suffix: str = "_lowlevel") -> Path:
    """``dir/name.heic`` -> ``dir/name_lowlevel.png``."""
    stem, _ = os.path.splitext(os.fspath(source_path))
    return Path(f"{stem}{suffix}.png")


@timed
def inspect_and_extract_primary(
    source_path: str | PathLike[str],
    options: DecodeOptions | None = None,
    *,
    registry: CodecRegistry | None = None,
    config: ConverterConfig | None = None,
) -> InspectionReport:
    """
    Inspect a container and write its primary image as a sibling PNG.

    A container without a declared primary image is reported, not an error.

    Raises:
        ValidationError: Empty source path
        OpenError: Unreadable source or invalid container
        DecodeError: The primary image failed to decode (no other image is tried)
        WriteError: The PNG could not be written
    """
    if not source_path or not os.fspath(source_path):
        raise ValidationError("source_path must not be empty")

    options = options or DecodeOptions()
    config = config or ConverterConfig()
    registry = registry if registry is not None else default_registry()

    logger.info(f"Performing lowlevel conversion of {source_path}")
    with HeifContainer.open(source_path, registry=registry) as container:
        ids = container.top_level_image_ids()
        logger.info(f"Number of top level images: {len(ids)}")
        logger.info(f"List of top level image IDs: {list(ids)}")

        report = {
            "source_path": os.fspath(source_path),
            "format": container.format_tag,
            "image_ids": list(ids),
        }

        handle = container.primary_image_handle()
        if handle is None:
            logger.warning(f"Could not get primary image id: {source_path} declares no primary image")
            return InspectionReport.model_validate(report)

        logger.info(f"Primary image: {handle.item_id}")

        buffer = handle.decode(options)
        if handle.size is None:
            logger.debug(f"Primary image {handle.item_id} declares no ispe size, using decoded size")
        width, height = handle.size or buffer.size
        logger.info(f"Image size: {width} × {height}")
        logger.info(f"Rectangle: {buffer.bounds}")

        output_path = lowlevel_output_path(source_path, config.lowlevel_suffix)
        try:
            png = registry.get(FormatTag.PNG).encode(buffer, CodecParams())
        except CodecNotFoundError as exc:
            raise EncodeError(str(exc), path=output_path) from exc
        except EncodeError as exc:
            raise EncodeError(exc.message, path=output_path) from exc
        _ = persist(png, output_path, mode=config.file_mode)

    return InspectionReport.model_validate(
        report
        | {
            "primary_id": handle.item_id,
            "width": buffer.width,
            "height": buffer.height,
            "output_path": str(output_path),
            "state": InspectionState.DECODED,
        }
    )
