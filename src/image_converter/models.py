"""Domain models for image conversion runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .formats import ImageFormat


@dataclass(frozen=True, slots=True)
class ConversionOptions:
    """Options shared by every job of a batch."""

    quality: int | None = None
    recursive: bool = False
    output_dir: Path | None = None
    parallelism: int | None = None


@dataclass(frozen=True, slots=True)
class ConversionJob:
    """One input file to one output file.

    ``base_dir`` is only set when a directory is being processed; it anchors the
    sub-path that gets recreated under ``output_root``.
    """

    input_path: Path
    target_format: ImageFormat
    output_root: Path | None = None
    base_dir: Path | None = None


@dataclass(slots=True)
class ConversionResult:
    """Outcome of a single job."""

    source: Path
    output_path: Path | None
    succeeded: bool
    error_code: str | None = None
    message: str = ""
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0


@dataclass(slots=True)
class BatchResult:
    """Aggregate counts for a batch conversion request."""

    successes: int = 0
    failures: int = 0
    skipped: int = 0
    results: list[ConversionResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.successes + self.failures + self.skipped

    def record(self, result: ConversionResult) -> None:
        self.results.append(result)
        if result.succeeded:
            self.successes += 1
        else:
            self.failures += 1


__all__ = [
    "BatchResult",
    "ConversionJob",
    "ConversionOptions",
    "ConversionResult",
]
