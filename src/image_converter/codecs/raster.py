from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Any, Mapping

from PIL import Image

from ..formats import ImageFormat, native_codec_names

# Modes each Pillow writer accepts without conversion. Anything else is
# converted to the fallback mode before saving.
_WRITABLE_MODES: dict[str, tuple[frozenset[str], str]] = {
    "JPEG": (frozenset({"L", "RGB", "CMYK"}), "RGB"),
    "PNG": (frozenset({"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}), "RGBA"),
    "BMP": (frozenset({"1", "L", "P", "RGB", "RGBA"}), "RGBA"),
}


def encoder_options(target: ImageFormat, quality: int | None) -> dict[str, Any]:
    if quality is None or not target.capabilities.supports_quality:
        return {}
    if target.capabilities.codec_name == "TIFF":
        return {"compression": "jpeg", "quality": quality}
    return {"quality": quality}


def decode(path: Path) -> Image.Image:
    with Image.open(path, formats=native_codec_names()) as image:
        image.load()
        return image.copy()


def _prepare(image: Image.Image, codec_name: str, options: Mapping[str, Any]) -> Image.Image:
    if codec_name == "TIFF" and options.get("compression") == "jpeg":
        codec_name = "JPEG"
    allowed = _WRITABLE_MODES.get(codec_name)
    if allowed is None:
        return image
    modes, fallback = allowed
    if image.mode in modes:
        return image
    if fallback == "RGBA" and not image.has_transparency_data:
        fallback = "RGB"
    return image.convert(fallback)


def encode(image: Image.Image, target: ImageFormat, options: Mapping[str, Any] | None = None) -> bytes:
    opts = dict(options or {})
    codec_name = target.capabilities.codec_name
    prepared = _prepare(image, codec_name, opts)
    buffer = BytesIO()
    prepared.save(buffer, format=codec_name, **opts)
    return buffer.getvalue()


__all__ = ["decode", "encode", "encoder_options"]
