"""AVIF codec backed by Pillow's built-in AVIF plugin (libavif, AV1)."""

from typing import ClassVar

from PIL import features
from typing_extensions import override

from ..common.formats import Compression, FormatTag, brands_from_header
from ..common.pixel_buffer import PixelBuffer
from ..common.schemas import CodecParams
from .base import PillowCodec


class AvifCodec(PillowCodec):
    """
    AVIF still images.

    AV1 has no exact RGB mode in libavif's Pillow bindings, so ``lossless``
    maps to quality 100 with 4:4:4 subsampling.
    """

    tags: ClassVar[frozenset[FormatTag]] = frozenset({FormatTag.AVIF})
    compression: ClassVar[Compression | None] = Compression.AV1
    pil_format: ClassVar[str] = "AVIF"

    @staticmethod
    def available() -> bool:
        return bool(features.check("avif"))

    @override
    def matches(self, data: bytes) -> bool:
        brands = brands_from_header(data)
        if brands is None:
            return False
        return FormatTag.from_brands(*brands) is FormatTag.AVIF

    @override
    def _encode(self, buffer: PixelBuffer, params: CodecParams) -> bytes:
        image = buffer.to_image()
        if image.mode == "L":
            image = image.convert("RGB")
        elif image.mode == "LA":
            image = image.convert("RGBA")

        if params.lossless:
            return self._save(image, quality=100, subsampling="4:4:4")
        return self._save(image, quality=params.quality)
