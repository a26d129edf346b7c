"""PixelBuffer - canonical decoded image passed from decoders to encoders."""

from typing import Final

import numpy as np
from numpy.typing import NDArray
from PIL import Image

from .errors import ValidationError

SUPPORTED_MODES: Final[frozenset[str]] = frozenset({"RGB", "RGBA", "L", "LA"})
ALPHA_MODES: Final[frozenset[str]] = frozenset({"RGBA", "LA"})

_ARRAY_MODES: Final[dict[int, str]] = {2: "LA", 3: "RGB", 4: "RGBA"}

# Single-band modes wider than 8 bits; Pillow's convert("L") clips them
_WIDE_GREY_MODES: Final[frozenset[str]] = frozenset({"I", "I;16", "I;16B", "I;16L", "I;16N"})


def _scale_to_grey(image: Image.Image) -> Image.Image:
    """Rescale a 16/32-bit integer or float grey image to 8-bit L."""
    if image.mode == "F":
        samples = np.asarray(image, dtype=np.float64)
        # float images hold either 0..1 or 0..255 samples
        if samples.size and np.nanmax(samples) <= 1.0:
            samples = samples * 255.0
        grey = np.clip(np.rint(np.nan_to_num(samples)), 0, 255).astype(np.uint8)
    else:
        samples = np.asarray(image, dtype=np.int64)
        grey = (np.clip(samples, 0, 0xFFFF) >> 8).astype(np.uint8)
    return Image.fromarray(grey)


def _normalize(image: Image.Image) -> Image.Image:
    """Bring any Pillow image into one of the supported 8-bit modes."""
    if image.mode in SUPPORTED_MODES:
        return image.copy()
    if image.mode in _WIDE_GREY_MODES or image.mode == "F":
        return _scale_to_grey(image)

    has_alpha = "A" in image.getbands() or "transparency" in image.info
    if image.mode == "1" and not has_alpha:
        return image.convert("L")
    return image.convert("RGBA" if has_alpha else "RGB")


class PixelBuffer:
    """
    Decoded raster image in an 8-bit RGB, RGBA, L or LA color model.

    - Owns a private Pillow image; ``to_image()`` hands out copies
    - ``bounds`` is (x0, y0, x1, y1); the origin need not be (0, 0)
    - Width and height are always positive
    """

    def __init__(self, image: Image.Image, origin: tuple[int, int] = (0, 0)):
        if image is None:  # pyright: ignore[reportUnnecessaryComparison]
            raise ValidationError("image is nil")
        if image.width <= 0 or image.height <= 0:
            raise ValidationError(f"image has empty size {image.width}x{image.height}")

        self._image: Image.Image = _normalize(image)
        self._origin: tuple[int, int] = origin

    @classmethod
    def from_image(cls, image: Image.Image, origin: tuple[int, int] = (0, 0)) -> "PixelBuffer":
        image.load()
        return cls(image, origin)

    @classmethod
    def from_array(cls, array: NDArray[np.uint8], origin: tuple[int, int] = (0, 0)) -> "PixelBuffer":
        """Build a buffer from an (H, W) or (H, W, C) uint8 array, C in {2, 3, 4}."""
        pixels = np.ascontiguousarray(array, dtype=np.uint8)
        if pixels.ndim == 2:
            return cls(Image.fromarray(pixels), origin)
        if pixels.ndim == 3 and pixels.shape[2] in _ARRAY_MODES:
            if pixels.shape[2] == 2:
                grey = Image.fromarray(np.ascontiguousarray(pixels[:, :, 0]))
                alpha = Image.fromarray(np.ascontiguousarray(pixels[:, :, 1]))
                return cls(Image.merge("LA", (grey, alpha)), origin)
            return cls(Image.fromarray(pixels), origin)
        raise ValidationError(f"unsupported pixel array shape {pixels.shape}")

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def size(self) -> tuple[int, int]:
        return self._image.size

    @property
    def mode(self) -> str:
        return self._image.mode

    @property
    def has_alpha(self) -> bool:
        return self._image.mode in ALPHA_MODES

    @property
    def bounds(self) -> tuple[int, int, int, int]:
        x0, y0 = self._origin
        return (x0, y0, x0 + self.width, y0 + self.height)

    def pixel(self, x: int, y: int) -> tuple[int, ...]:
        """Return the pixel at (x, y) in bounds coordinates."""
        x0, y0, x1, y1 = self.bounds
        if not (x0 <= x < x1 and y0 <= y < y1):
            raise IndexError(f"pixel ({x}, {y}) outside bounds {self.bounds}")

        value = self._image.getpixel((x - x0, y - y0))
        if isinstance(value, tuple):
            return tuple(int(v) for v in value)
        return (int(value),)  # pyright: ignore[reportArgumentType]

    def to_array(self) -> NDArray[np.uint8]:
        return np.array(self._image, dtype=np.uint8)

    def to_image(self) -> Image.Image:
        return self._image.copy()

    def convert(self, mode: str) -> "PixelBuffer":
        if mode not in SUPPORTED_MODES:
            raise ValidationError(f"unsupported color model: {mode}")
        if mode == self.mode:
            return self
        return PixelBuffer(self._image.convert(mode), self._origin)

    def __repr__(self) -> str:
        return f"PixelBuffer(mode={self.mode!r}, bounds={self.bounds})"
