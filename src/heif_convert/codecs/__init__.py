"""Codec adapters and the codec registry."""

from .avif import AvifCodec
from .base import CodecAdapter, PillowCodec
from .heif import HeifCodec
from .raster import JpegCodec, PngCodec
from .registry import CodecNotFoundError, CodecRegistry, default_registry

__all__ = [
    "AvifCodec",
    "CodecAdapter",
    "CodecNotFoundError",
    "CodecRegistry",
    "HeifCodec",
    "JpegCodec",
    "PillowCodec",
    "PngCodec",
    "default_registry",
]
