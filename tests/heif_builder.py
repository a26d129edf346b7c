"""Hand-built ISO-BMFF containers for container parsing tests.

Builds only the item structure (ftyp + meta); the mdat payload is filler,
so these files open but do not decode.
"""

import struct
from collections.abc import Iterable, Sequence
from typing import NamedTuple


class Item(NamedTuple):
    item_id: int
    item_type: str = "hvc1"
    hidden: bool = False
    name: str = ""


def box(box_type: str, payload: bytes = b"") -> bytes:
    return struct.pack(">I4s", 8 + len(payload), box_type.encode("latin-1")) + payload


def full_box(box_type: str, payload: bytes = b"", version: int = 0, flags: int = 0) -> bytes:
    return box(box_type, struct.pack(">B", version) + flags.to_bytes(3, "big") + payload)


def ftyp(major: str = "heic", compatible: Sequence[str] = ("mif1", "heic")) -> bytes:
    brands = b"".join(brand.encode("latin-1") for brand in compatible)
    return box("ftyp", major.encode("latin-1") + struct.pack(">I", 0) + brands)


def hdlr(handler: str = "pict") -> bytes:
    return full_box("hdlr", struct.pack(">I", 0) + handler.encode("latin-1") + b"\0" * 12 + b"\0")


def infe(item: Item) -> bytes:
    payload = (
        struct.pack(">HH", item.item_id, 0)
        + item.item_type.encode("latin-1")
        + item.name.encode("utf-8")
        + b"\0"
    )
    return full_box("infe", payload, version=2, flags=1 if item.hidden else 0)


def iinf(items: Sequence[Item], declared_count: int | None = None) -> bytes:
    count = len(items) if declared_count is None else declared_count
    return full_box("iinf", struct.pack(">H", count) + b"".join(infe(item) for item in items))


def pitm(item_id: int) -> bytes:
    return full_box("pitm", struct.pack(">H", item_id))


def iref(references: Iterable[tuple[str, int, Sequence[int]]]) -> bytes:
    payload = b"".join(
        box(ref_type, struct.pack(">HH", from_id, len(to_ids)) + b"".join(struct.pack(">H", i) for i in to_ids))
        for ref_type, from_id, to_ids in references
    )
    return full_box("iref", payload)


def iprp(sizes: dict[int, tuple[int, int]]) -> bytes:
    properties = b""
    entries = b""
    for index, (item_id, (width, height)) in enumerate(sizes.items(), start=1):
        properties += full_box("ispe", struct.pack(">II", width, height))
        # one essential association pointing at property ``index``
        entries += struct.pack(">HBB", item_id, 1, 0x80 | index)
    ipma = full_box("ipma", struct.pack(">I", len(sizes)) + entries)
    return box("iprp", box("ipco", properties) + ipma)


def build_container(
    items: Sequence[Item] = (),
    *,
    primary: int | None = None,
    references: Iterable[tuple[str, int, Sequence[int]]] = (),
    sizes: dict[int, tuple[int, int]] | None = None,
    major: str = "heic",
    compatible: Sequence[str] = ("mif1", "heic"),
    handler: str = "pict",
) -> bytes:
    children = hdlr(handler)
    if primary is not None:
        children += pitm(primary)
    children += iinf(items)
    references = list(references)
    if references:
        children += iref(references)
    if sizes:
        children += iprp(sizes)

    return ftyp(major, compatible) + full_box("meta", children) + box("mdat", b"\0" * 16)
