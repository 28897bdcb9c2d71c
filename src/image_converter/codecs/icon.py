"""Windows icon (ICO) container packing and unpacking.

Entries are returned in directory order. PNG-compressed entries keep their
original bytes; DIB entries are kept raw and only decoded on demand through
:func:`entry_to_image`.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from io import BytesIO
from typing import Literal, Sequence

from PIL import Image

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"

_HEADER = struct.Struct("<HHH")
_ENTRY = struct.Struct("<BBBBHHII")
_ICON_TYPE = 1


class IconContainerError(ValueError):
    """Raised when bytes do not form a readable ICO container."""


@dataclass(slots=True)
class IconEntry:
    width: int
    height: int
    encoding: Literal["png", "bmp"]
    data: bytes
    directory: bytes = field(default=b"", repr=False)


def _png_dimensions(data: bytes) -> tuple[int, int]:
    # signature(8) length(4) type(4) then IHDR width/height
    if len(data) < 24 or data[12:16] != b"IHDR":
        raise IconContainerError("PNG entry has no IHDR chunk")
    width, height = struct.unpack(">II", data[16:24])
    return int(width), int(height)


def _dib_dimensions(data: bytes) -> tuple[int, int]:
    if len(data) < 12:
        raise IconContainerError("Truncated bitmap entry")
    width, height = struct.unpack("<ii", data[4:12])
    # DIB height covers the XOR and AND masks
    return abs(int(width)), abs(int(height)) // 2


def unpack_container(data: bytes) -> list[IconEntry]:
    if len(data) < _HEADER.size:
        raise IconContainerError("File is too short to be an icon")
    reserved, kind, count = _HEADER.unpack_from(data, 0)
    if reserved != 0 or kind != _ICON_TYPE:
        raise IconContainerError("Not an ICO container")
    if count == 0:
        raise IconContainerError("Icon container holds no images")

    entries: list[IconEntry] = []
    for index in range(count):
        position = _HEADER.size + index * _ENTRY.size
        if position + _ENTRY.size > len(data):
            raise IconContainerError(f"Truncated icon directory at entry {index}")
        raw_entry = data[position : position + _ENTRY.size]
        *_, size, offset = _ENTRY.unpack(raw_entry)
        if offset + size > len(data) or size == 0:
            raise IconContainerError(f"Icon entry {index} points outside the file")
        payload = data[offset : offset + size]
        if payload.startswith(PNG_MAGIC):
            width, height = _png_dimensions(payload)
            encoding: Literal["png", "bmp"] = "png"
        else:
            width, height = _dib_dimensions(payload)
            encoding = "bmp"
        entries.append(
            IconEntry(
                width=width,
                height=height,
                encoding=encoding,
                data=payload,
                directory=raw_entry[:12],
            )
        )
    return entries


def select_largest(entries: Sequence[IconEntry]) -> IconEntry:
    if not entries:
        raise IconContainerError("Icon container holds no images")
    # max() keeps the first entry on ties
    return max(entries, key=lambda entry: entry.width)


def entry_to_image(entry: IconEntry) -> Image.Image:
    """Decode a single entry into an RGBA raster."""

    if entry.encoding == "png":
        source = BytesIO(entry.data)
        formats: tuple[str, ...] = ("PNG",)
    else:
        offset = _HEADER.size + _ENTRY.size
        single = _HEADER.pack(0, _ICON_TYPE, 1) + entry.directory + struct.pack("<I", offset)
        source = BytesIO(single + entry.data)
        formats = ("ICO",)
    with Image.open(source, formats=formats) as image:
        image.load()
        return image.convert("RGBA")


def pack_container(png_data: bytes) -> bytes:
    """Wrap one PNG image into a single-entry ICO container."""

    if not png_data.startswith(PNG_MAGIC):
        raise IconContainerError("Icon payload must be PNG encoded")
    width, height = _png_dimensions(png_data)
    offset = _HEADER.size + _ENTRY.size
    # 0 in the directory means 256 or larger
    directory = _ENTRY.pack(
        width if width < 256 else 0,
        height if height < 256 else 0,
        0,
        0,
        1,
        32,
        len(png_data),
        offset,
    )
    return _HEADER.pack(0, _ICON_TYPE, 1) + directory + png_data


__all__ = [
    "IconContainerError",
    "IconEntry",
    "PNG_MAGIC",
    "entry_to_image",
    "pack_container",
    "select_largest",
    "unpack_container",
]
