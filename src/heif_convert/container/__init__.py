"""HEIF-family container inspection."""

from .boxes import BoxFormatError, ContainerInfo, ItemInfo, ItemReference, parse_container
from .inspector import (
    HeifContainer,
    ImageHandle,
    InspectionReport,
    InspectionState,
    inspect_and_extract_primary,
    lowlevel_output_path,
)

__all__ = [
    "BoxFormatError",
    "ContainerInfo",
    "HeifContainer",
    "ImageHandle",
    "InspectionReport",
    "InspectionState",
    "ItemInfo",
    "ItemReference",
    "inspect_and_extract_primary",
    "lowlevel_output_path",
    "parse_container",
]
