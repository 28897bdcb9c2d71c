"""Codec collaborators backed by Pillow.

``raster`` handles the formats Pillow reads and writes directly for this tool;
``bitmap`` and ``icon`` cover the legacy BMP and container ICO formats that go
through a normalized PNG.
"""

from . import bitmap, icon, raster
from .icon import IconContainerError, IconEntry

__all__ = [
    "IconContainerError",
    "IconEntry",
    "bitmap",
    "icon",
    "raster",
]
