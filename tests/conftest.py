from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

ImageFactory = Callable[..., Path]


def gradient(size: tuple[int, int] = (32, 24), mode: str = "RGB") -> Image.Image:
    width, height = size
    image = Image.new("RGB", size)
    image.putdata(
        [((x * 255) // max(width - 1, 1), (y * 255) // max(height - 1, 1), 128) for y in range(height) for x in range(width)]
    )
    return image.convert(mode)


@pytest.fixture
def make_image() -> ImageFactory:
    def _make(path: Path, size: tuple[int, int] = (32, 24), mode: str = "RGB", **save_options) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        gradient(size, mode).save(path, **save_options)
        return path

    return _make


@pytest.fixture
def make_icon() -> ImageFactory:
    def _make(path: Path, sizes: list[tuple[int, int]], **save_options) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        largest = max(sizes)
        gradient(largest, "RGBA").save(path, format="ICO", sizes=sizes, **save_options)
        return path

    return _make

