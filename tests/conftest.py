"""Test configuration and fixtures for heif_convert.

This module provides:
- Pytest configuration (markers, codec availability checks)
- Synthetic pixel buffers (solid color, checkerboard, random noise)
- Source files written to tmp_path (PNG, JPEG, HEIC)
- Registries wired with real or fake codecs
"""

from io import BytesIO
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from heif_convert.codecs.avif import AvifCodec
from heif_convert.codecs.raster import JpegCodec, PngCodec
from heif_convert.codecs.registry import CodecRegistry
from heif_convert.common.pixel_buffer import PixelBuffer
from tests.fakes import FakeHeicCodec

# ============================================================================
# Pytest Configuration
# ============================================================================


def _heif_encoder_available() -> bool:
    try:
        import pillow_heif

        pillow_heif.from_pillow(Image.new("RGB", (16, 16))).save(BytesIO(), quality=50)
    except (ImportError, ValueError, RuntimeError, OSError):
        return False
    return True


def _avif_available() -> bool:
    return AvifCodec.available()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "requires_heif_encoder: requires pillow-heif with a working HEVC encoder",
    )
    config.addinivalue_line(
        "markers",
        "requires_avif: requires Pillow built with AVIF support",
    )


def pytest_runtest_setup(item):
    """Skip codec-bound tests when the installed libraries lack the codec."""
    if item.get_closest_marker("requires_heif_encoder") and not _heif_encoder_available():
        pytest.skip("pillow-heif HEVC encoder not available")

    if item.get_closest_marker("requires_avif") and not _avif_available():
        pytest.skip("Pillow was built without AVIF support")


# ============================================================================
# Synthetic Pixel Buffers
# ============================================================================


@pytest.fixture
def solid_buffer() -> PixelBuffer:
    """64x48 opaque solid color."""
    return PixelBuffer(Image.new("RGB", (64, 48), color=(73, 109, 137)))


@pytest.fixture
def checkerboard_buffer() -> PixelBuffer:
    """64x64 RGB checkerboard with 8px cells."""
    cells = (np.indices((64, 64)) // 8).sum(axis=0) % 2
    pixels = np.zeros((64, 64, 3), dtype=np.uint8)
    pixels[cells == 1] = (255, 255, 255)
    pixels[cells == 0] = (20, 40, 200)
    return PixelBuffer.from_array(pixels)


@pytest.fixture
def noise_buffer() -> PixelBuffer:
    """32x32 RGBA random noise (seeded)."""
    rng = np.random.default_rng(1234)
    pixels = rng.integers(0, 256, size=(32, 32, 4), dtype=np.uint8)
    return PixelBuffer.from_array(pixels)


@pytest.fixture
def rgba_2x2_buffer() -> PixelBuffer:
    """Known 2x2 RGBA buffer (single opaque color)."""
    pixels = np.full((2, 2, 4), (200, 80, 40, 255), dtype=np.uint8)
    return PixelBuffer.from_array(pixels)


# ============================================================================
# Source Files
# ============================================================================


@pytest.fixture
def png_path(tmp_path: Path, checkerboard_buffer: PixelBuffer) -> Path:
    path = tmp_path / "source.png"
    checkerboard_buffer.to_image().save(path, "PNG")
    return path


@pytest.fixture
def jpeg_path(tmp_path: Path, solid_buffer: PixelBuffer) -> Path:
    path = tmp_path / "source.jpg"
    solid_buffer.to_image().save(path, "JPEG", quality=95)
    return path


@pytest.fixture
def heic_path(tmp_path: Path, checkerboard_buffer: PixelBuffer) -> Path:
    """Real HEIC file; tests using it must be marked requires_heif_encoder."""
    import pillow_heif

    path = tmp_path / "source.heic"
    pillow_heif.from_pillow(checkerboard_buffer.to_image()).save(path, quality=90)
    return path


# ============================================================================
# Registries
# ============================================================================


@pytest.fixture
def fake_heic_codec() -> FakeHeicCodec:
    return FakeHeicCodec()


@pytest.fixture
def fake_registry(fake_heic_codec: FakeHeicCodec) -> CodecRegistry:
    """JPEG + PNG + a fake HEIC codec that needs no HEVC encoder."""
    return CodecRegistry([JpegCodec(), PngCodec(), fake_heic_codec])


@pytest.fixture
def fake_heic_path(tmp_path: Path, fake_heic_codec: FakeHeicCodec, checkerboard_buffer: PixelBuffer) -> Path:
    path = tmp_path / "source.heic"
    _ = path.write_bytes(fake_heic_codec.container_bytes(checkerboard_buffer))
    return path
