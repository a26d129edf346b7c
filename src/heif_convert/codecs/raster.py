"""JPEG and PNG codecs (Pillow)."""

from typing import ClassVar, Final

from typing_extensions import override

from ..common.formats import FormatTag
from ..common.pixel_buffer import PixelBuffer
from ..common.schemas import CodecParams
from .base import PillowCodec

JPEG_MAGIC: Final[bytes] = b"\xff\xd8\xff"
PNG_MAGIC: Final[bytes] = b"\x89PNG\r\n\x1a\n"


class JpegCodec(PillowCodec):
    tags: ClassVar[frozenset[FormatTag]] = frozenset({FormatTag.JPEG})
    pil_format: ClassVar[str] = "JPEG"

    @override
    def matches(self, data: bytes) -> bool:
        return data.startswith(JPEG_MAGIC)

    @override
    def _encode(self, buffer: PixelBuffer, params: CodecParams) -> bytes:
        image = buffer.to_image()

        # JPEG does not support alpha channel
        if image.mode == "RGBA":
            image = image.convert("RGB")
        elif image.mode == "LA":
            image = image.convert("L")

        return self._save(image, quality=params.quality)


class PngCodec(PillowCodec):
    """PNG is lossless; quality is ignored."""

    tags: ClassVar[frozenset[FormatTag]] = frozenset({FormatTag.PNG})
    pil_format: ClassVar[str] = "PNG"

    @override
    def matches(self, data: bytes) -> bool:
        return data.startswith(PNG_MAGIC)

    @override
    def _encode(self, buffer: PixelBuffer, params: CodecParams) -> bytes:
        return self._save(buffer.to_image(), optimize=True)
