"""ISO-BMFF box reader for HEIF-family containers.

Only the item-level structure is read: ``ftyp``, and inside ``meta`` the
``hdlr``, ``pitm``, ``iinf``/``infe``, ``iref`` and ``iprp`` (``ispe`` and
``ipma``) boxes. Coded image data is left to the codecs.
"""

import struct
from collections.abc import Iterator
from typing import ClassVar, Final, NamedTuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

IMAGE_ITEM_TYPES: Final[frozenset[str]] = frozenset(
    {"hvc1", "av01", "grid", "iden", "iovl", "jpeg", "unci"}
)

# Reference types whose *from* item is not a top-level image
_DEPENDENT_FROM_REFS: Final[frozenset[str]] = frozenset({"thmb", "auxl"})
# Reference types whose *to* items are inputs of a derived image
_DERIVATION_REFS: Final[frozenset[str]] = frozenset({"dimg"})


class BoxFormatError(ValueError):
    """Raised when the byte stream is not a well-formed HEIF container."""


class Box(NamedTuple):
    type: str
    start: int  # payload start
    end: int  # payload end (exclusive)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ItemInfo(BaseModel):
    """One ``infe`` entry."""

    item_id: int = Field(..., ge=0)
    item_type: str = Field(default="", description="Four-character item type ('' for infe v0/v1)")
    hidden: bool = False
    name: str = ""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @property
    def is_image(self) -> bool:
        return self.item_type in IMAGE_ITEM_TYPES


class ItemReference(BaseModel):
    """One single-item-type reference from an ``iref`` box."""

    reference_type: str
    from_item_id: int
    to_item_ids: tuple[int, ...] = ()

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


class ContainerInfo(BaseModel):
    """Item-level description of a HEIF container."""

    major_brand: str
    compatible_brands: tuple[str, ...] = ()
    handler_type: str | None = None
    primary_item_id: int | None = None
    items: tuple[ItemInfo, ...] = ()
    references: tuple[ItemReference, ...] = ()
    image_sizes: dict[int, tuple[int, int]] = Field(default_factory=dict)

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    def item(self, item_id: int) -> ItemInfo | None:
        for info in self.items:
            if info.item_id == item_id:
                return info
        return None

    def top_level_item_ids(self) -> tuple[int, ...]:
        """Visible image items that are not thumbnails, auxiliary images or derivation inputs."""
        excluded: set[int] = set()
        for ref in self.references:
            if ref.reference_type in _DEPENDENT_FROM_REFS:
                excluded.add(ref.from_item_id)
            elif ref.reference_type in _DERIVATION_REFS:
                excluded.update(ref.to_item_ids)

        return tuple(
            info.item_id
            for info in self.items
            if info.is_image and not info.hidden and info.item_id not in excluded
        )


# ---------------------------------------------------------------------------
# Low-level reading
# ---------------------------------------------------------------------------


def iter_boxes(data: bytes, start: int, end: int) -> Iterator[Box]:
    """Yield the boxes laid out back to back in ``data[start:end]``."""
    offset = start
    while offset < end:
        if end - offset < 8:
            raise BoxFormatError(f"truncated box header at offset {offset}")

        size, raw_type = struct.unpack_from(">I4s", data, offset)
        box_type = raw_type.decode("latin-1")
        header = 8
        if size == 1:
            if end - offset < 16:
                raise BoxFormatError(f"truncated large box '{box_type}' at offset {offset}")
            (size,) = struct.unpack_from(">Q", data, offset + 8)
            header = 16
        elif size == 0:
            size = end - offset

        if size < header or offset + size > end:
            raise BoxFormatError(f"box '{box_type}' at offset {offset} overruns its parent")

        yield Box(box_type, offset + header, offset + size)
        offset += size


class _Reader:
    """Sequential big-endian reader over one box payload."""

    def __init__(self, data: bytes, box: Box):
        self._data: bytes = data
        self._box: Box = box
        self.pos: int = box.start

    def _take(self, fmt: str) -> tuple[int, ...]:
        size = struct.calcsize(fmt)
        if self.pos + size > self._box.end:
            raise BoxFormatError(f"truncated '{self._box.type}' box")
        values = struct.unpack_from(fmt, self._data, self.pos)
        self.pos += size
        return values

    def u8(self) -> int:
        return self._take(">B")[0]

    def u16(self) -> int:
        return self._take(">H")[0]

    def u32(self) -> int:
        return self._take(">I")[0]

    def uint(self, wide: bool) -> int:
        return self.u32() if wide else self.u16()

    def fourcc(self) -> str:
        if self.pos + 4 > self._box.end:
            raise BoxFormatError(f"truncated '{self._box.type}' box")
        value = self._data[self.pos : self.pos + 4].decode("latin-1")
        self.pos += 4
        return value

    def full_box_header(self) -> tuple[int, int]:
        version = self.u8()
        flags = (self.u8() << 16) | self.u16()
        return version, flags

    def cstring(self) -> str:
        end = self._data.find(b"\0", self.pos, self._box.end)
        stop = self._box.end if end < 0 else end
        value = self._data[self.pos : stop].decode("utf-8", errors="replace")
        self.pos = min(stop + 1, self._box.end)
        return value

    def children(self) -> Iterator[Box]:
        return iter_boxes(self._data, self.pos, self._box.end)


# ---------------------------------------------------------------------------
# Box parsers
# ---------------------------------------------------------------------------


def _parse_ftyp(data: bytes, box: Box) -> tuple[str, tuple[str, ...]]:
    reader = _Reader(data, box)
    major = reader.fourcc()
    _ = reader.u32()  # minor_version
    compatible: list[str] = []
    while reader.pos + 4 <= box.end:
        compatible.append(reader.fourcc())
    return major, tuple(compatible)


def _parse_hdlr(data: bytes, box: Box) -> str:
    reader = _Reader(data, box)
    _ = reader.full_box_header()
    _ = reader.u32()  # pre_defined
    return reader.fourcc()


def _parse_pitm(data: bytes, box: Box) -> int:
    reader = _Reader(data, box)
    version, _ = reader.full_box_header()
    return reader.uint(wide=version != 0)


def _parse_infe(data: bytes, box: Box) -> ItemInfo:
    reader = _Reader(data, box)
    version, flags = reader.full_box_header()
    if version < 2:
        item_id = reader.u16()
        _ = reader.u16()  # item_protection_index
        return ItemInfo(item_id=item_id, name=reader.cstring())

    item_id = reader.uint(wide=version != 2)
    _ = reader.u16()  # item_protection_index
    item_type = reader.fourcc()
    name = reader.cstring() if reader.pos < box.end else ""
    return ItemInfo(item_id=item_id, item_type=item_type, hidden=bool(flags & 1), name=name)


def _parse_iinf(data: bytes, box: Box) -> tuple[ItemInfo, ...]:
    reader = _Reader(data, box)
    version, _ = reader.full_box_header()
    entry_count = reader.uint(wide=version != 0)

    items = tuple(_parse_infe(data, child) for child in reader.children() if child.type == "infe")
    if len(items) != entry_count:
        raise BoxFormatError(f"'iinf' declares {entry_count} items but holds {len(items)}")
    return items


def _parse_iref(data: bytes, box: Box) -> tuple[ItemReference, ...]:
    reader = _Reader(data, box)
    version, _ = reader.full_box_header()
    wide = version != 0

    references: list[ItemReference] = []
    for child in reader.children():
        ref_reader = _Reader(data, child)
        from_id = ref_reader.uint(wide)
        count = ref_reader.u16()
        to_ids = tuple(ref_reader.uint(wide) for _ in range(count))
        references.append(
            ItemReference(reference_type=child.type, from_item_id=from_id, to_item_ids=to_ids)
        )
    return tuple(references)


def _parse_iprp(data: bytes, box: Box) -> dict[int, tuple[int, int]]:
    """Map item IDs to their ``ispe`` (width, height) through ``ipma``."""
    properties: list[Box] = []
    associations: dict[int, list[int]] = {}

    for child in _Reader(data, box).children():
        if child.type == "ipco":
            properties.extend(iter_boxes(data, child.start, child.end))
        elif child.type == "ipma":
            reader = _Reader(data, child)
            version, flags = reader.full_box_header()
            for _ in range(reader.u32()):
                item_id = reader.uint(wide=version >= 1)
                indices = associations.setdefault(item_id, [])
                for _ in range(reader.u8()):
                    if flags & 1:
                        indices.append(reader.u16() & 0x7FFF)
                    else:
                        indices.append(reader.u8() & 0x7F)

    sizes: dict[int, tuple[int, int]] = {}
    for item_id, indices in associations.items():
        for index in indices:
            # property indices are 1-based; 0 means "no property"
            if index == 0 or index > len(properties):
                continue
            prop = properties[index - 1]
            if prop.type == "ispe":
                reader = _Reader(data, prop)
                _ = reader.full_box_header()
                sizes[item_id] = (reader.u32(), reader.u32())
                break
    return sizes


def _parse_meta(data: bytes, box: Box, fields: dict[str, object]) -> None:
    reader = _Reader(data, box)
    _ = reader.full_box_header()

    for child in reader.children():
        if child.type == "hdlr":
            fields["handler_type"] = _parse_hdlr(data, child)
        elif child.type == "pitm":
            fields["primary_item_id"] = _parse_pitm(data, child)
        elif child.type == "iinf":
            fields["items"] = _parse_iinf(data, child)
        elif child.type == "iref":
            fields["references"] = _parse_iref(data, child)
        elif child.type == "iprp":
            fields["image_sizes"] = _parse_iprp(data, child)


def parse_container(data: bytes) -> ContainerInfo:
    """
    Parse the item structure of a HEIF-family file.

    Raises:
        BoxFormatError: Missing ``ftyp``/``meta``, malformed boxes or
            inconsistent item tables
    """
    boxes = iter_boxes(data, 0, len(data))
    first = next(boxes, None)
    if first is None or first.type != "ftyp":
        raise BoxFormatError("No 'ftyp' box")

    major, compatible = _parse_ftyp(data, first)
    fields: dict[str, object] = {"major_brand": major, "compatible_brands": compatible}

    has_meta = False
    for box in boxes:
        if box.type == "meta" and not has_meta:
            _parse_meta(data, box, fields)
            has_meta = True

    if not has_meta:
        raise BoxFormatError("No 'meta' box")
    if fields.get("handler_type") != "pict":
        raise BoxFormatError(f"'meta' handler is {fields.get('handler_type')!r}, expected 'pict'")

    info = ContainerInfo.model_validate(fields)

    ids = [item.item_id for item in info.items]
    if len(ids) != len(set(ids)):
        raise BoxFormatError("item IDs are not unique")

    logger.debug(f"Parsed container: brand={major}, items={ids}, primary={info.primary_item_id}")
    return info
