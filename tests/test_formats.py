"""Unit tests for format tags and ftyp brand classification."""

import pytest

from heif_convert.common.formats import (
    CONTAINER_FAMILY,
    RASTER_FORMATS,
    FormatTag,
    brands_from_header,
)
from tests.heif_builder import ftyp

# ============================================================================
# FormatTag Parsing Tests
# ============================================================================


def test_format_tag_values():
    """Test FormatTag enum has expected values."""
    assert FormatTag.JPEG == "jpeg"
    assert FormatTag.PNG == "png"
    assert FormatTag.HEIF == "heif"
    assert FormatTag.HEIC == "heic"
    assert FormatTag.AVIF == "avif"
    assert FormatTag.UNKNOWN == "unknown"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("jpeg", FormatTag.JPEG),
        ("JPG", FormatTag.JPEG),
        (" png ", FormatTag.PNG),
        ("HEIC", FormatTag.HEIC),
        ("avif", FormatTag.AVIF),
        ("svg", FormatTag.UNKNOWN),
        ("", FormatTag.UNKNOWN),
    ],
)
def test_parse(value: str, expected: FormatTag):
    """Test FormatTag.parse is case-insensitive and accepts aliases."""
    assert FormatTag.parse(value) is expected


def test_from_pil_format():
    """Test Pillow format names map to tags."""
    assert FormatTag.from_pil_format("JPEG") is FormatTag.JPEG
    assert FormatTag.from_pil_format("PNG") is FormatTag.PNG
    assert FormatTag.from_pil_format("AVIF") is FormatTag.AVIF
    assert FormatTag.from_pil_format(None) is FormatTag.UNKNOWN


def test_from_mimetype():
    """Test libheif MIME types map to tags."""
    assert FormatTag.from_mimetype("image/heic") is FormatTag.HEIC
    assert FormatTag.from_mimetype("image/heif") is FormatTag.HEIF
    assert FormatTag.from_mimetype("image/avif") is FormatTag.AVIF
    assert FormatTag.from_mimetype("") is FormatTag.UNKNOWN
    assert FormatTag.from_mimetype("video/mp4") is FormatTag.UNKNOWN


def test_family_membership():
    """Test container and raster groupings."""
    assert CONTAINER_FAMILY == {FormatTag.HEIF, FormatTag.HEIC, FormatTag.AVIF}
    assert RASTER_FORMATS == {FormatTag.JPEG, FormatTag.PNG}
    assert FormatTag.HEIC.is_container
    assert not FormatTag.HEIC.is_raster
    assert FormatTag.PNG.is_raster
    assert not FormatTag.UNKNOWN.is_container


# ============================================================================
# Brand Classification Tests
# ============================================================================


@pytest.mark.parametrize(
    ("major", "compatible", "expected"),
    [
        ("heic", ("mif1", "heic"), FormatTag.HEIC),
        ("heix", (), FormatTag.HEIC),
        ("avif", ("mif1", "avif"), FormatTag.AVIF),
        ("mif1", ("avif",), FormatTag.AVIF),
        ("mif1", ("heic",), FormatTag.HEIC),
        ("mif1", ("mif1",), FormatTag.HEIF),
        ("isom", ("mp41",), FormatTag.UNKNOWN),
    ],
)
def test_from_brands(major: str, compatible: tuple[str, ...], expected: FormatTag):
    """Test ftyp brands classify into HEIF-family tags."""
    assert FormatTag.from_brands(major, compatible) is expected


def test_brands_from_header_reads_ftyp():
    """Test brands are read from a leading ftyp box."""
    data = ftyp("heic", ("mif1", "heic")) + b"rest of file"

    assert brands_from_header(data) == ("heic", ("mif1", "heic"))


def test_brands_from_header_without_compatible_brands():
    """Test a minimal 16-byte ftyp box."""
    assert brands_from_header(ftyp("avif", ())) == ("avif", ())


def test_brands_from_header_rejects_other_streams():
    """Test non-ISO-BMFF or truncated input yields None."""
    assert brands_from_header(b"\x89PNG\r\n\x1a\n" + b"\0" * 16) is None
    assert brands_from_header(b"") is None
    assert brands_from_header(ftyp("heic")[:12]) is None
