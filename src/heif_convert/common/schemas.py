"""Pydantic models for codec parameters, decode options and converter settings."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .formats import CONTAINER_FAMILY, Chroma, Colorspace, Compression, FormatTag

# ─────────────────────────────────────────────────────────────
# Encode-time parameters
# ─────────────────────────────────────────────────────────────


class CodecParams(BaseModel):
    """Encode-time configuration handed to a codec adapter.

    Attributes:
        quality: 1..100, higher is better fidelity; each codec maps it to its own scale
        lossless: Request exact reconstruction (container codecs only)
        compression: Coded image compression for container output
    """

    quality: int = Field(
        default=90,
        ge=1,
        le=100,
        strict=True,
        description="Output quality (1-100)",
    )
    lossless: bool = Field(default=False, description="Lossless encoding (HEIF family only)")
    compression: Compression = Field(
        default=Compression.HEVC,
        description="Compression used for container output",
    )

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def container_default(cls) -> "CodecParams":
        """Fixed parameters used when converting rasters into a container."""
        return cls(quality=100, lossless=True, compression=Compression.HEVC)


# ─────────────────────────────────────────────────────────────
# Decode-time options (container inspector)
# ─────────────────────────────────────────────────────────────

_CHROMA_COLORSPACE: dict[Chroma, Colorspace] = {
    Chroma.MONOCHROME: Colorspace.MONOCHROME,
    Chroma.INTERLEAVED_RGB: Colorspace.RGB,
    Chroma.INTERLEAVED_RGBA: Colorspace.RGB,
}


class DecodeOptions(BaseModel):
    """Color model requested when decoding a container image.

    ``undefined`` for both fields leaves the choice to the decoder.
    """

    colorspace: Colorspace = Colorspace.UNDEFINED
    chroma: Chroma = Chroma.UNDEFINED

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_combination(self) -> "DecodeOptions":
        """Ensure chroma and colorspace agree."""
        if self.chroma is Chroma.UNDEFINED or self.colorspace is Colorspace.UNDEFINED:
            return self
        if _CHROMA_COLORSPACE[self.chroma] is not self.colorspace:
            raise ValueError(
                f"chroma '{self.chroma}' is not valid for colorspace '{self.colorspace}'"
            )
        return self

    def target_mode(self, has_alpha: bool) -> str | None:
        """Pillow mode the decoded image should be converted to, or None to keep it."""
        if self.chroma is Chroma.INTERLEAVED_RGB:
            return "RGB"
        if self.chroma is Chroma.INTERLEAVED_RGBA:
            return "RGBA"
        if self.chroma is Chroma.MONOCHROME or self.colorspace is Colorspace.MONOCHROME:
            return "L"
        if self.colorspace is Colorspace.RGB:
            return "RGBA" if has_alpha else "RGB"
        return None


# ─────────────────────────────────────────────────────────────
# Converter configuration
# ─────────────────────────────────────────────────────────────


class ConverterConfig(BaseModel):
    """Settings shared by the conversion pipeline and the container inspector."""

    accepted_source_tags: frozenset[FormatTag] = Field(
        default=CONTAINER_FAMILY,
        description="Source formats accepted when converting a container to a raster",
    )
    container_params: CodecParams = Field(
        default_factory=CodecParams.container_default,
        description="Parameters used when converting a raster into a container",
    )
    lowlevel_suffix: str = Field(
        default="_lowlevel",
        min_length=1,
        description="Suffix added to the source stem for extracted primary images",
    )
    file_mode: int = Field(
        default=0o644,
        ge=0,
        le=0o777,
        description="Permission bits applied to written files",
    )

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", frozen=True)

    @field_validator("accepted_source_tags")
    @classmethod
    def validate_container_tags(cls, v: frozenset[FormatTag]) -> frozenset[FormatTag]:
        """Ensure accepted tags are a non-empty subset of the HEIF family."""
        if not v:
            raise ValueError("At least one source format must be accepted")
        outside = v - CONTAINER_FAMILY
        if outside:
            raise ValueError(f"Not HEIF-family formats: {sorted(outside)}")
        return v
