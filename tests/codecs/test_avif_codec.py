"""Unit tests for the Pillow-backed AVIF codec."""

import numpy as np
import pytest
from PIL import features

from heif_convert.codecs.avif import AvifCodec
from heif_convert.codecs.heif import HeifCodec
from heif_convert.common.errors import DecodeError, EncodeError
from heif_convert.common.formats import Compression, FormatTag
from heif_convert.common.pixel_buffer import PixelBuffer
from heif_convert.common.schemas import CodecParams
from tests.heif_builder import ftyp

AV1 = CodecParams(compression=Compression.AV1)


def test_available_reports_pillow_avif_support():
    """Test availability mirrors Pillow's AVIF feature flag."""
    assert AvifCodec.available() is bool(features.check("avif"))


def test_matches_avif_brands_only():
    """Test AVIF brands are claimed and HEIC brands are not."""
    codec = AvifCodec()

    assert codec.matches(ftyp("avif", ("mif1", "avif")) + b"\0" * 16)
    assert codec.matches(ftyp("mif1", ("avif",)) + b"\0" * 16)
    assert not codec.matches(ftyp("heic", ("mif1", "heic")) + b"\0" * 16)
    assert not codec.matches(b"\x89PNG\r\n\x1a\n" + b"\0" * 16)


def test_encode_rejects_hevc(solid_buffer: PixelBuffer):
    """Test the AV1 codec refuses HEVC parameters."""
    with pytest.raises(EncodeError, match="hevc"):
        _ = AvifCodec().encode(solid_buffer, CodecParams())


def test_decode_non_avif_bytes():
    """Test non-AVIF input is rejected."""
    with pytest.raises(DecodeError, match="not a AVIF stream"):
        _ = AvifCodec().decode(b"\xff\xd8\xff\xe0" + b"\0" * 32)


@pytest.mark.requires_avif
def test_lossy_round_trip(solid_buffer: PixelBuffer):
    """Test AVIF output decodes close to the source and reports AVIF."""
    codec = AvifCodec()

    decoded, tag = codec.decode(codec.encode(solid_buffer, CodecParams(quality=90, compression=Compression.AV1)))

    assert tag is FormatTag.AVIF
    assert decoded.size == solid_buffer.size
    diff = np.abs(decoded.to_array().astype(int) - solid_buffer.to_array().astype(int))
    assert diff.max() <= 8


@pytest.mark.requires_avif
def test_lossless_params_keep_alpha():
    """Test lossless AVIF keeps a translucent alpha channel and stays near the source.

    libavif omits fully opaque alpha planes, so the source alpha is 128.
    """
    translucent = PixelBuffer.from_array(np.full((2, 2, 4), (200, 80, 40, 128), dtype=np.uint8))
    codec = AvifCodec()

    decoded, _ = codec.decode(codec.encode(translucent, CodecParams(lossless=True, compression=Compression.AV1)))

    assert decoded.mode == "RGBA"
    diff = np.abs(decoded.to_array().astype(int) - translucent.to_array().astype(int))
    assert diff.max() <= 4


@pytest.mark.requires_avif
def test_avif_output_not_claimed_by_heif_codec(solid_buffer: PixelBuffer):
    """Test dispatch keeps AVIF streams away from the HEVC codec."""
    data = AvifCodec().encode(solid_buffer, AV1)

    assert AvifCodec().matches(data)
    assert not HeifCodec().matches(data)
