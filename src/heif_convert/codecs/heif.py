"""HEIF/HEIC codec backed by pillow-heif (libheif, HEVC).

pillow-heif is used through its direct API rather than
``register_heif_opener()``, so importing this module changes no global
Pillow state.
"""

from io import BytesIO
from typing import ClassVar

import pillow_heif
from loguru import logger
from typing_extensions import override

from ..common.errors import DecodeError, EncodeError
from ..common.formats import Compression, FormatTag, brands_from_header
from ..common.pixel_buffer import PixelBuffer
from ..common.schemas import CodecParams
from .base import CodecAdapter

# pillow-heif reports libheif failures as ValueError/RuntimeError
HEIF_ERRORS = (ValueError, RuntimeError, OSError, EOFError)

# quality=-1 selects the lossless encoder path; 4:4:4 with identity matrix
# coefficients keeps RGB samples exact
LOSSLESS_SAVE_KWARGS: dict[str, object] = {
    "quality": -1,
    "chroma": 444,
    "matrix_coefficients": 0,
}


class HeifCodec(CodecAdapter):
    tags: ClassVar[frozenset[FormatTag]] = frozenset({FormatTag.HEIF, FormatTag.HEIC})
    compression: ClassVar[Compression | None] = Compression.HEVC

    @property
    @override
    def name(self) -> str:
        return "HEIF"

    @override
    def matches(self, data: bytes) -> bool:
        brands = brands_from_header(data)
        if brands is None:
            return False
        return FormatTag.from_brands(*brands) in self.tags

    @override
    def _decode(self, data: bytes) -> tuple[PixelBuffer, FormatTag]:
        try:
            heif_file = pillow_heif.open_heif(BytesIO(data), convert_hdr_to_8bit=True)
            image = heif_file.to_pillow()
            mimetype = heif_file.mimetype
        except HEIF_ERRORS as exc:
            raise DecodeError(f"could not decode HEIF image: {exc}") from exc

        tag = FormatTag.from_mimetype(mimetype)
        if tag not in self.tags:
            brands = brands_from_header(data)
            tag = FormatTag.from_brands(*brands) if brands else FormatTag.HEIF
        logger.debug(f"libheif decoded {image.width}x{image.height} {image.mode} ({mimetype})")

        return PixelBuffer.from_image(image), tag

    @override
    def _encode(self, buffer: PixelBuffer, params: CodecParams) -> bytes:
        image = buffer.to_image()
        if image.mode == "L":
            image = image.convert("RGB")
        elif image.mode == "LA":
            image = image.convert("RGBA")

        save_kwargs = LOSSLESS_SAVE_KWARGS if params.lossless else {"quality": params.quality}

        out = BytesIO()
        try:
            heif_file = pillow_heif.from_pillow(image)
            heif_file.save(out, **save_kwargs)
        except HEIF_ERRORS as exc:
            raise EncodeError(f"failed to HEIF encode image: {exc}") from exc
        return out.getvalue()
