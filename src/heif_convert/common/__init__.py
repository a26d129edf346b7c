"""Common module - pixel buffer, format tags, errors, schemas and storage."""

from .errors import (
    ConversionError,
    DecodeError,
    EncodeError,
    OpenError,
    UnexpectedFormatError,
    ValidationError,
    WriteError,
)
from .formats import CONTAINER_FAMILY, RASTER_FORMATS, Chroma, Colorspace, Compression, FormatTag
from .pixel_buffer import PixelBuffer
from .schemas import CodecParams, ConverterConfig, DecodeOptions
from .storage import persist, read_source

__all__ = [
    "CONTAINER_FAMILY",
    "RASTER_FORMATS",
    "Chroma",
    "CodecParams",
    "Colorspace",
    "Compression",
    "ConversionError",
    "ConverterConfig",
    "DecodeError",
    "DecodeOptions",
    "EncodeError",
    "FormatTag",
    "OpenError",
    "PixelBuffer",
    "UnexpectedFormatError",
    "ValidationError",
    "WriteError",
    "persist",
    "read_source",
]
