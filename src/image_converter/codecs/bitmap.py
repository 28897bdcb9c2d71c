from __future__ import annotations

from io import BytesIO

from PIL import Image

from ..formats import ImageFormat
from . import raster


def decode_bitmap(data: bytes) -> Image.Image:
    with Image.open(BytesIO(data), formats=("BMP",)) as image:
        image.load()
        return image.copy()


def encode_bitmap(image: Image.Image) -> bytes:
    return raster.encode(image, ImageFormat.BMP)


__all__ = ["decode_bitmap", "encode_bitmap"]
