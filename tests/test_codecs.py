from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from conftest import gradient
from image_converter.codecs import bitmap, icon, raster
from image_converter.codecs.icon import IconContainerError, IconEntry
from image_converter.formats import ImageFormat


def _png_bytes(size: tuple[int, int]) -> bytes:
    buffer = BytesIO()
    gradient(size, "RGBA").save(buffer, format="PNG")
    return buffer.getvalue()


def test_encoder_options() -> None:
    assert raster.encoder_options(ImageFormat.JPG, 70) == {"quality": 70}
    assert raster.encoder_options(ImageFormat.WEBP, 10) == {"quality": 10}
    assert raster.encoder_options(ImageFormat.TIF, 80) == {"compression": "jpeg", "quality": 80}
    assert raster.encoder_options(ImageFormat.PNG, 80) == {}
    assert raster.encoder_options(ImageFormat.JPEG, None) == {}


def test_jpeg_encode_drops_alpha() -> None:
    data = raster.encode(gradient(mode="RGBA"), ImageFormat.JPEG)
    with Image.open(BytesIO(data)) as image:
        assert image.format == "JPEG"
        assert image.mode == "RGB"


def test_raster_decode_rejects_bitmap(tmp_path: Path) -> None:
    path = tmp_path / "a.bmp"
    gradient().save(path, format="BMP")
    with pytest.raises(OSError):
        raster.decode(path)


def test_bitmap_round_trip_keeps_size() -> None:
    data = bitmap.encode_bitmap(gradient((20, 10), "RGBA"))
    assert data[:2] == b"BM"
    assert bitmap.decode_bitmap(data).size == (20, 10)


def test_jpeg_quality_changes_size() -> None:
    noisy = Image.effect_noise((96, 96), 80).convert("RGB")
    low = raster.encode(noisy, ImageFormat.JPG, raster.encoder_options(ImageFormat.JPG, 50))
    high = raster.encode(noisy, ImageFormat.JPG, raster.encoder_options(ImageFormat.JPG, 95))
    assert len(low) <= len(high)


def test_pack_container_single_png_entry() -> None:
    png = _png_bytes((48, 40))
    packed = icon.pack_container(png)
    entries = icon.unpack_container(packed)
    assert len(entries) == 1
    assert (entries[0].width, entries[0].height, entries[0].encoding) == (48, 40, "png")
    assert entries[0].data == png
    with Image.open(BytesIO(packed)) as image:
        assert image.format == "ICO"


def test_pack_container_large_image_uses_zero_dimension() -> None:
    packed = icon.pack_container(_png_bytes((300, 256)))
    assert packed[6] == 0
    assert packed[7] == 0
    assert icon.unpack_container(packed)[0].width == 300


def test_pack_container_requires_png() -> None:
    with pytest.raises(IconContainerError):
        icon.pack_container(b"GIF89a")


def test_unpack_pillow_icon_png_entries(tmp_path: Path) -> None:
    path = tmp_path / "app.ico"
    gradient((48, 48), "RGBA").save(path, format="ICO", sizes=[(16, 16), (32, 32), (48, 48)])
    entries = icon.unpack_container(path.read_bytes())
    assert sorted(entry.width for entry in entries) == [16, 32, 48]
    assert icon.select_largest(entries).width == 48


def test_unpack_bitmap_entries_decode(tmp_path: Path) -> None:
    path = tmp_path / "legacy.ico"
    gradient((32, 32), "RGBA").save(
        path, format="ICO", sizes=[(16, 16), (32, 32)], bitmap_format="bmp"
    )
    entries = icon.unpack_container(path.read_bytes())
    assert {entry.encoding for entry in entries} == {"bmp"}
    largest = icon.select_largest(entries)
    image = icon.entry_to_image(largest)
    assert image.mode == "RGBA"
    assert image.size == (32, 32)


def test_select_largest_keeps_first_on_tie() -> None:
    first = IconEntry(width=32, height=32, encoding="png", data=b"first")
    second = IconEntry(width=32, height=64, encoding="png", data=b"second")
    small = IconEntry(width=16, height=16, encoding="png", data=b"small")
    assert icon.select_largest([small, first, second]) is first


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"\x00\x00\x02\x00\x01\x00",
        b"\x00\x00\x01\x00\x00\x00",
        b"\x00\x00\x01\x00\x01\x00" + b"\x10" * 8,
        b"\x00\x00\x01\x00\x01\x00" + bytes([16, 16, 0, 0, 1, 0, 32, 0]) + (500).to_bytes(4, "little") + (22).to_bytes(4, "little"),
    ],
)
def test_unpack_rejects_malformed_containers(payload: bytes) -> None:
    with pytest.raises(IconContainerError):
        icon.unpack_container(payload)
