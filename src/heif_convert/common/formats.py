"""Format tags and codec enumerations shared by every conversion stage."""

from enum import StrEnum
from typing import Final


class FormatTag(StrEnum):
    """Classification of a decoded source, reported by the decoder itself."""

    JPEG = "jpeg"
    PNG = "png"
    HEIF = "heif"
    HEIC = "heic"
    AVIF = "avif"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: "str | FormatTag") -> "FormatTag":
        """Parse a user supplied format name (case-insensitive, accepts aliases)."""
        name = str(value).strip().lower()
        name = _ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_pil_format(cls, pil_format: str | None) -> "FormatTag":
        if not pil_format:
            return cls.UNKNOWN
        return cls.parse(pil_format)

    @classmethod
    def from_mimetype(cls, mimetype: str | None) -> "FormatTag":
        if not mimetype or not mimetype.startswith("image/"):
            return cls.UNKNOWN
        return cls.parse(mimetype.removeprefix("image/").split("-")[0])

    @classmethod
    def from_brands(cls, major: str, compatible: tuple[str, ...] = ()) -> "FormatTag":
        """Classify an ISO-BMFF file from its ``ftyp`` brands.

        The major brand wins; generic HEIF brands (``mif1``) fall back to the
        compatible brand list to tell AVIF and HEIC apart.
        """
        if major in AVIF_BRANDS:
            return cls.AVIF
        if major in HEIC_BRANDS:
            return cls.HEIC
        if major in HEIF_BRANDS:
            if any(brand in AVIF_BRANDS for brand in compatible):
                return cls.AVIF
            if any(brand in HEIC_BRANDS for brand in compatible):
                return cls.HEIC
            return cls.HEIF
        return cls.UNKNOWN

    @property
    def is_container(self) -> bool:
        return self in CONTAINER_FAMILY

    @property
    def is_raster(self) -> bool:
        return self in RASTER_FORMATS


class Compression(StrEnum):
    """Coded image compression used inside a HEIF-family container."""

    HEVC = "hevc"
    AV1 = "av1"


class Colorspace(StrEnum):
    UNDEFINED = "undefined"
    RGB = "rgb"
    MONOCHROME = "monochrome"


class Chroma(StrEnum):
    UNDEFINED = "undefined"
    MONOCHROME = "monochrome"
    INTERLEAVED_RGB = "interleaved_rgb"
    INTERLEAVED_RGBA = "interleaved_rgba"


_ALIASES: Final[dict[str, str]] = {
    "jpg": "jpeg",
    "jpe": "jpeg",
    "heics": "heic",
    "heifs": "heif",
}

CONTAINER_FAMILY: Final[frozenset[FormatTag]] = frozenset(
    {FormatTag.HEIF, FormatTag.HEIC, FormatTag.AVIF}
)
RASTER_FORMATS: Final[frozenset[FormatTag]] = frozenset({FormatTag.JPEG, FormatTag.PNG})

HEIC_BRANDS: Final[frozenset[str]] = frozenset(
    {"heic", "heix", "heim", "heis", "hevc", "hevx", "hevm", "hevs"}
)
AVIF_BRANDS: Final[frozenset[str]] = frozenset({"avif", "avis"})
HEIF_BRANDS: Final[frozenset[str]] = frozenset({"mif1", "mif2", "msf1", "heif"})


def brands_from_header(data: bytes) -> tuple[str, tuple[str, ...]] | None:
    """Read major and compatible brands from a leading ``ftyp`` box.

    Returns None when the bytes do not start with an ``ftyp`` box.
    """
    if len(data) < 16 or data[4:8] != b"ftyp":
        return None

    size = int.from_bytes(data[0:4], "big")
    if size < 16 or size > len(data):
        return None

    major = data[8:12].decode("latin-1")
    compatible = tuple(
        data[offset : offset + 4].decode("latin-1") for offset in range(16, size - 3, 4)
    )
    return major, compatible
