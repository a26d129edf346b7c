"""CodecAdapter - abstract base class for format codecs."""

from abc import ABC, abstractmethod
from io import BytesIO
from typing import ClassVar

from PIL import Image

from ..common.errors import DecodeError, EncodeError
from ..common.formats import Compression, FormatTag
from ..common.pixel_buffer import PixelBuffer
from ..common.schemas import CodecParams

# Exceptions Pillow raises for malformed, truncated or unsupported input
PILLOW_DECODE_ERRORS = (OSError, SyntaxError, ValueError, EOFError, Image.DecompressionBombError)
PILLOW_ENCODE_ERRORS = (OSError, ValueError, KeyError)


class CodecAdapter(ABC):
    """
    Stateless decode/encode service for one image format family.

    - decode() reports the format the library identified
    - encode() never mutates the buffer and never touches storage
    """

    tags: ClassVar[frozenset[FormatTag]]
    compression: ClassVar[Compression | None] = None

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def matches(self, data: bytes) -> bool:
        """Return True if ``data`` carries this codec's signature."""
        ...

    @abstractmethod
    def _decode(self, data: bytes) -> tuple[PixelBuffer, FormatTag]: ...

    @abstractmethod
    def _encode(self, buffer: PixelBuffer, params: CodecParams) -> bytes: ...

    def decode(self, data: bytes) -> tuple[PixelBuffer, FormatTag]:
        """
        Decode an encoded byte stream.

        Raises:
            DecodeError: Empty input, wrong signature, malformed or truncated stream
        """
        if not data:
            raise DecodeError("input is empty")
        if not self.matches(data):
            raise DecodeError(f"input is not a {self.name} stream")
        return self._decode(data)

    def encode(self, buffer: PixelBuffer, params: CodecParams) -> bytes:
        """
        Encode a buffer into this codec's byte stream.

        Raises:
            EncodeError: Unsupported parameters or internal encoder failure
        """
        if self.compression is not None and params.compression is not self.compression:
            raise EncodeError(f"{self.name} cannot encode with {params.compression} compression")
        return self._encode(buffer, params)


class PillowCodec(CodecAdapter):
    """Codec backed by a Pillow image plugin."""

    pil_format: ClassVar[str]

    @property
    def name(self) -> str:
        return self.pil_format

    def _decode(self, data: bytes) -> tuple[PixelBuffer, FormatTag]:
        try:
            with Image.open(BytesIO(data), formats=[self.pil_format]) as image:
                image.load()
                tag = FormatTag.from_pil_format(image.format)
                buffer = PixelBuffer.from_image(image)
        except PILLOW_DECODE_ERRORS as exc:
            raise DecodeError(f"could not decode {self.name} image: {exc}") from exc
        return buffer, tag

    def _save(self, image: Image.Image, **save_kwargs: object) -> bytes:
        out = BytesIO()
        try:
            image.save(out, format=self.pil_format, **save_kwargs)
        except PILLOW_ENCODE_ERRORS as exc:
            raise EncodeError(f"could not encode image as {self.name}: {exc}") from exc
        return out.getvalue()
