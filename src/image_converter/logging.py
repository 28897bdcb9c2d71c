from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Protocol

from rich.console import Console
from rich.markup import escape
from rich.status import Status

from .models import BatchResult, ConversionJob, ConversionResult


class BatchReporter(Protocol):
    def info(self, message: str) -> None:  # pragma: no cover - interface
        ...

    def warning(self, message: str) -> None:  # pragma: no cover - interface
        ...

    def file_started(self, job: ConversionJob) -> None:  # pragma: no cover - interface
        ...

    def file_finished(self, job: ConversionJob, result: ConversionResult) -> None:  # pragma: no cover - interface
        ...

    def summary(self, result: BatchResult) -> None:  # pragma: no cover - interface
        ...


class NullReporter:
    def info(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        pass

    def file_started(self, job: ConversionJob) -> None:
        pass

    def file_finished(self, job: ConversionJob, result: ConversionResult) -> None:
        pass

    def summary(self, result: BatchResult) -> None:
        pass


class ConsoleReporter:
    """Render batch events on a rich console."""

    def __init__(self, console: Console | None = None, *, spinner: bool = True) -> None:
        self._console = console or Console()
        self._spinner = spinner
        self._status: Status | None = None

    def info(self, message: str) -> None:
        self._console.print(f"[blue]ℹ[/blue] {escape(message)}")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]⚠ Warning:[/yellow] {escape(message)}")

    def success(self, message: str) -> None:
        self._console.print(f"[green]✔[/green] {escape(message)}")

    def error(self, message: str) -> None:
        self._console.print(f"[red]✖ Error:[/red] {escape(message)}")

    def file_started(self, job: ConversionJob) -> None:
        if not self._spinner:
            return
        text = f"Converting {job.input_path.name} to {job.target_format.value}..."
        if self._status is None:
            self._status = self._console.status(text)
            self._status.start()
        else:
            self._status.update(text)

    def file_finished(self, job: ConversionJob, result: ConversionResult) -> None:
        name = job.input_path.name
        if result.succeeded:
            self.success(f"Converted {name} to {job.target_format.value}")
            for warning in result.warnings:
                self.warning(f"{name}: {warning}")
        else:
            self.error(f"Failed to convert {name}: {result.message}")

    def summary(self, result: BatchResult) -> None:
        self._stop_status()
        self._console.print("")
        if result.successes:
            self.success(f"Successfully converted {result.successes} images.")
        if result.failures:
            self.error(f"Failed to convert {result.failures} images.")
        if result.skipped:
            self.warning(f"Skipped {result.skipped} images after cancellation.")

    def _stop_status(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


@dataclass(slots=True)
class RunLogEntry:
    source: str
    target_format: str
    status: str
    output_path: str | None
    error_code: str | None
    message: str
    warnings: list[str]
    elapsed_ms: float
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_result(cls, job: ConversionJob, result: ConversionResult) -> RunLogEntry:
        return cls(
            source=str(result.source),
            target_format=job.target_format.value,
            status="success" if result.succeeded else "failure",
            output_path=str(result.output_path) if result.output_path else None,
            error_code=result.error_code,
            message=result.message,
            warnings=list(result.warnings),
            elapsed_ms=round(result.elapsed_ms, 3),
        )


class RunLogger:
    """Append one JSON line per converted file."""

    def __init__(self, log_file: Path) -> None:
        self._log_file = log_file
        self._lock = threading.Lock()

    def append(self, entry: RunLogEntry) -> None:
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._lock:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            with self._log_file.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")


__all__ = [
    "BatchReporter",
    "ConsoleReporter",
    "NullReporter",
    "RunLogEntry",
    "RunLogger",
]
