"""heif_convert - HEIF/HEIC/AVIF <-> JPEG/PNG conversion."""

from .codecs import CodecAdapter, CodecNotFoundError, CodecRegistry, default_registry
from .common.errors import (
    ConversionError,
    DecodeError,
    EncodeError,
    OpenError,
    UnexpectedFormatError,
    ValidationError,
    WriteError,
)
from .common.formats import Chroma, Colorspace, Compression, FormatTag
from .common.pixel_buffer import PixelBuffer
from .common.schemas import CodecParams, ConverterConfig, DecodeOptions
from .container import HeifContainer, ImageHandle, InspectionReport, inspect_and_extract_primary
from .pipeline import Converter, heif_to_jpeg, heif_to_png, to_container, to_raster
from .sniffer import classify

__version__ = "0.1.0"

__all__ = [
    "Chroma",
    "CodecAdapter",
    "CodecNotFoundError",
    "CodecParams",
    "CodecRegistry",
    "Colorspace",
    "Compression",
    "ConversionError",
    "Converter",
    "ConverterConfig",
    "DecodeError",
    "DecodeOptions",
    "EncodeError",
    "FormatTag",
    "HeifContainer",
    "ImageHandle",
    "InspectionReport",
    "OpenError",
    "PixelBuffer",
    "UnexpectedFormatError",
    "ValidationError",
    "WriteError",
    "__version__",
    "classify",
    "default_registry",
    "heif_to_jpeg",
    "heif_to_png",
    "inspect_and_extract_primary",
    "to_container",
    "to_raster",
]
