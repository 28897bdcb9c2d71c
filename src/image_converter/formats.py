from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ImageFormat(str, Enum):
    JPG = "jpg"
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"
    TIFF = "tiff"
    TIF = "tif"
    BMP = "bmp"
    ICO = "ico"
    GIF = "gif"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @property
    def capabilities(self) -> FormatCapabilities:
        return CAPABILITIES[self]


@dataclass(frozen=True, slots=True)
class FormatCapabilities:
    codec_name: str
    can_encode: bool
    can_decode_natively: bool
    supports_quality: bool


class UnsupportedFormatError(ValueError):
    """Raised when a format or extension is outside the registry."""


CAPABILITIES: dict[ImageFormat, FormatCapabilities] = {
    ImageFormat.JPG: FormatCapabilities("JPEG", True, True, True),
    ImageFormat.JPEG: FormatCapabilities("JPEG", True, True, True),
    ImageFormat.PNG: FormatCapabilities("PNG", True, True, False),
    ImageFormat.WEBP: FormatCapabilities("WEBP", True, True, True),
    ImageFormat.AVIF: FormatCapabilities("AVIF", True, True, True),
    ImageFormat.TIFF: FormatCapabilities("TIFF", True, True, True),
    ImageFormat.TIF: FormatCapabilities("TIFF", True, True, True),
    ImageFormat.BMP: FormatCapabilities("BMP", True, False, False),
    ImageFormat.ICO: FormatCapabilities("ICO", True, False, False),
    ImageFormat.GIF: FormatCapabilities("GIF", True, True, False),
}


def _normalize(value: str) -> str:
    return value.strip().removeprefix(".").lower()


def supported_formats() -> tuple[str, ...]:
    return tuple(fmt.value for fmt in ImageFormat)


def is_supported_extension(ext: str) -> bool:
    return _normalize(ext) in supported_formats()


def parse_format(value: str) -> ImageFormat:
    try:
        return ImageFormat(_normalize(value))
    except ValueError as exc:
        raise UnsupportedFormatError(
            f"Unsupported format: {value or '<none>'}. "
            f"Supported formats: {', '.join(supported_formats())}"
        ) from exc


def format_for_path(path: Path) -> ImageFormat | None:
    if not is_supported_extension(path.suffix):
        return None
    return ImageFormat(_normalize(path.suffix))


def native_codec_names() -> tuple[str, ...]:
    """Pillow plugin names the raster codec is allowed to open."""

    names: list[str] = []
    for caps in CAPABILITIES.values():
        if caps.can_decode_natively and caps.codec_name not in names:
            names.append(caps.codec_name)
    return tuple(names)


__all__ = [
    "CAPABILITIES",
    "FormatCapabilities",
    "ImageFormat",
    "UnsupportedFormatError",
    "format_for_path",
    "is_supported_extension",
    "native_codec_names",
    "parse_format",
    "supported_formats",
]
