from __future__ import annotations

import hashlib
import itertools
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .formats import ImageFormat, is_supported_extension


TEMP_PREFIX = ".temp"

_token_counter = itertools.count()


def generate_token(prefix: str = "job") -> str:
    epoch_ms = int(time.time() * 1000)
    random_bits = hashlib.sha256(os.urandom(16)).hexdigest()[:8]
    # next() on itertools.count is atomic under the GIL
    return f"{prefix}-{epoch_ms}-{next(_token_counter)}-{random_bits}"


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


@contextmanager
def temporary_artifact(directory: Path, label: str = "in") -> Iterator[Path]:
    """Yield a unique scratch PNG path that is removed on every exit path."""

    path = directory / f"{TEMP_PREFIX}_{label}_{generate_token('tmp')}.png"
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    ensure_directory(path.parent)
    with tempfile.NamedTemporaryFile(
        "wb", delete=False, dir=path.parent, prefix=f"{TEMP_PREFIX}_write_"
    ) as tmp:
        scratch = Path(tmp.name)
        try:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        except BaseException:
            tmp.close()
            scratch.unlink(missing_ok=True)
            raise
    try:
        os.replace(scratch, path)
    except BaseException:
        scratch.unlink(missing_ok=True)
        raise


def discover_images(root: Path, recursive: bool = False) -> list[Path]:
    images: list[Path] = []
    for entry in root.iterdir():
        if entry.is_dir():
            if recursive:
                images.extend(discover_images(entry, recursive))
        elif entry.is_file() and is_supported_extension(entry.suffix):
            images.append(entry.absolute())
    return images


def resolve_output_path(
    input_path: Path,
    target_format: ImageFormat | str,
    output_root: Path | None = None,
    base_dir: Path | None = None,
) -> Path:
    target = target_format.value if isinstance(target_format, ImageFormat) else target_format
    if output_root is not None and base_dir is not None:
        relative = os.path.relpath(input_path.parent, base_dir)
        directory = output_root.absolute() / relative
    elif output_root is not None:
        directory = output_root.absolute()
    else:
        directory = input_path.parent
    directory = Path(os.path.normpath(directory))
    ensure_directory(directory)
    return directory / f"{input_path.stem}.{target.lower()}"


__all__ = [
    "TEMP_PREFIX",
    "atomic_write_bytes",
    "discover_images",
    "ensure_directory",
    "generate_token",
    "resolve_output_path",
    "temporary_artifact",
]
