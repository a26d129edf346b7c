"""Codec registry - explicit FormatTag -> CodecAdapter mapping."""

from collections.abc import Iterable

from loguru import logger

from ..common.errors import DecodeError
from ..common.formats import Compression, FormatTag
from ..common.pixel_buffer import PixelBuffer
from .avif import AvifCodec
from .base import CodecAdapter
from .heif import HeifCodec
from .raster import JpegCodec, PngCodec


class CodecNotFoundError(LookupError):
    """No adapter is registered for the requested format or compression."""


class CodecRegistry:
    """Registry of codec adapters, built once and passed to its consumers.

    Adapters are tried for decoding in registration order; the first one
    whose signature matches decodes the stream.

    Example:
        registry = CodecRegistry([JpegCodec(), PngCodec(), HeifCodec()])
        buffer, tag = registry.decode(data)
    """

    def __init__(self, adapters: Iterable[CodecAdapter] = ()):
        self._adapters: list[CodecAdapter] = []
        self._by_tag: dict[FormatTag, CodecAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: CodecAdapter) -> None:
        """Register an adapter for all of its tags, replacing earlier owners."""
        for tag in adapter.tags:
            self._by_tag[tag] = adapter

        owners = list(self._by_tag.values())
        self._adapters = [a for a in self._adapters if a is not adapter and a in owners]
        self._adapters.append(adapter)

    def tags(self) -> frozenset[FormatTag]:
        return frozenset(self._by_tag)

    def get(self, tag: FormatTag) -> CodecAdapter:
        """
        Return the adapter registered for ``tag``.

        Raises:
            CodecNotFoundError: If no adapter handles ``tag``
        """
        try:
            return self._by_tag[tag]
        except KeyError:
            raise CodecNotFoundError(f"no codec registered for {tag}") from None

    def for_compression(self, compression: Compression) -> CodecAdapter:
        for adapter in self._adapters:
            if adapter.compression is compression:
                return adapter
        raise CodecNotFoundError(f"no codec registered for {compression} compression")

    def decode(self, data: bytes) -> tuple[PixelBuffer, FormatTag]:
        """
        Decode with the first adapter whose signature matches.

        Raises:
            DecodeError: Empty input, unknown format, or adapter decode failure
        """
        if not data:
            raise DecodeError("input is empty")

        for adapter in self._adapters:
            if adapter.matches(data):
                logger.debug(f"Decoding with {adapter.name} codec")
                return adapter.decode(data)

        raise DecodeError("image: unknown format")


def default_registry() -> CodecRegistry:
    """Build a registry with every codec shipped by heif_convert."""
    return CodecRegistry([JpegCodec(), PngCodec(), HeifCodec(), AvifCodec()])
