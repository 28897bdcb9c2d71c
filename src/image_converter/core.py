from __future__ import annotations

import concurrent.futures
import os
import time
from contextlib import ExitStack
from dataclasses import replace
from pathlib import Path
from threading import Event
from typing import Callable, Sequence, TypeVar

from .codecs import bitmap, icon, raster
from .config import AppConfig
from .formats import ImageFormat, UnsupportedFormatError, format_for_path, parse_format, supported_formats
from .logging import BatchReporter, NullReporter, RunLogEntry, RunLogger
from .models import BatchResult, ConversionJob, ConversionOptions, ConversionResult
from .utils import atomic_write_bytes, discover_images, ensure_directory, resolve_output_path, temporary_artifact

T = TypeVar("T")


class ConversionError(RuntimeError):
    """A single file could not be converted; the batch carries on."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class BatchError(RuntimeError):
    """Configuration or input problem that stops the batch before any file is touched."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


def _guard(code: str, func: Callable[..., T], *args: object) -> T:
    try:
        return func(*args)
    except ConversionError:
        raise
    except Exception as exc:
        raise ConversionError(code, str(exc) or exc.__class__.__name__) from exc


class ConversionService:
    def __init__(self, config: AppConfig | None = None, *, run_logger: RunLogger | None = None) -> None:
        self._config = config or AppConfig()
        log_file = self._config.runtime.log_file
        self._run_logger = run_logger or (RunLogger(log_file) if log_file else None)

    # -- single file -------------------------------------------------------

    def convert_file(self, job: ConversionJob, options: ConversionOptions | None = None) -> ConversionResult:
        opts = options or ConversionOptions()
        start = time.perf_counter()
        output_path = _guard(
            "WRITE_FAILED",
            resolve_output_path,
            job.input_path,
            job.target_format,
            job.output_root,
            job.base_dir,
        )
        warnings: list[str] = []
        with ExitStack() as stack:
            source = self._normalize_intake(job.input_path, output_path.parent, stack, warnings)
            self._write_target(source, job.target_format, output_path, opts, stack)
        return ConversionResult(
            source=job.input_path,
            output_path=output_path,
            succeeded=True,
            warnings=warnings,
            elapsed_ms=(time.perf_counter() - start) * 1000,
        )

    def _normalize_intake(
        self, path: Path, workdir: Path, stack: ExitStack, warnings: list[str]
    ) -> Path:
        source_format = format_for_path(path)
        if source_format is None:
            raise ConversionError("UNSUPPORTED_FORMAT", f"Unsupported file format: {path.suffix or '<none>'}")
        if source_format.capabilities.can_decode_natively:
            return path

        data = _guard("READ_FAILED", path.read_bytes)
        if source_format is ImageFormat.BMP:
            image = _guard("DECODE_FAILED", bitmap.decode_bitmap, data)
            png_data = _guard("ENCODE_FAILED", raster.encode, image, ImageFormat.PNG)
        else:
            png_data = self._icon_to_png(data, warnings)

        intake = stack.enter_context(temporary_artifact(workdir, "in"))
        _guard("WRITE_FAILED", intake.write_bytes, png_data)
        return intake

    def _icon_to_png(self, data: bytes, warnings: list[str]) -> bytes:
        entries = _guard("CONTAINER_LAYOUT", icon.unpack_container, data)
        chosen = icon.select_largest(entries)
        if len(entries) > 1:
            warnings.append(
                f"kept the largest icon image ({chosen.width}x{chosen.height}), "
                f"discarded {len(entries) - 1} smaller"
            )
        if chosen.encoding == "png":
            return chosen.data
        image = _guard("DECODE_FAILED", icon.entry_to_image, chosen)
        return _guard("ENCODE_FAILED", raster.encode, image, ImageFormat.PNG)

    def _write_target(
        self,
        source: Path,
        target: ImageFormat,
        output_path: Path,
        options: ConversionOptions,
        stack: ExitStack,
    ) -> None:
        image = _guard("DECODE_FAILED", raster.decode, source)

        if target is ImageFormat.ICO:
            png_data = _guard("ENCODE_FAILED", raster.encode, image, ImageFormat.PNG)
            scratch = stack.enter_context(temporary_artifact(output_path.parent, "ico"))
            _guard("WRITE_FAILED", scratch.write_bytes, png_data)
            packed_source = _guard("READ_FAILED", scratch.read_bytes)
            payload = _guard("ENCODE_FAILED", icon.pack_container, packed_source)
        elif target is ImageFormat.BMP:
            png_data = _guard("ENCODE_FAILED", raster.encode, image, ImageFormat.PNG)
            scratch = stack.enter_context(temporary_artifact(output_path.parent, "bmp"))
            _guard("WRITE_FAILED", scratch.write_bytes, png_data)
            normalized = _guard("DECODE_FAILED", raster.decode, scratch)
            payload = _guard("ENCODE_FAILED", bitmap.encode_bitmap, normalized)
        else:
            encoder_options = raster.encoder_options(target, options.quality)
            payload = _guard("ENCODE_FAILED", raster.encode, image, target, encoder_options)

        _guard("WRITE_FAILED", atomic_write_bytes, output_path, payload)

    # -- batch -------------------------------------------------------------

    def run(
        self,
        input_path: Path | str,
        target_format: ImageFormat | str,
        options: ConversionOptions | None = None,
        *,
        reporter: BatchReporter | None = None,
        cancellation: Event | None = None,
    ) -> BatchResult:
        opts = options or ConversionOptions()
        report = reporter or NullReporter()
        target = self._validate_target(target_format)
        if target.capabilities.supports_quality:
            self._validate_quality(opts.quality)

        source = Path(os.path.abspath(input_path))
        files, base_dir = self._collect_inputs(source, opts.recursive, report)
        if not files:
            return BatchResult()

        output_root = self._prepare_output_root(opts.output_dir)
        if opts.quality is not None and not target.capabilities.supports_quality:
            report.warning(
                f"Quality parameter (-q, --quality) is not supported for '{target.value}' "
                "format and will be ignored."
            )
            opts = replace(opts, quality=None)

        jobs = [ConversionJob(path, target, output_root, base_dir) for path in files]
        parallelism = max(1, opts.parallelism or self._config.runtime.parallelism)
        if parallelism == 1:
            batch = self._run_sequential(jobs, opts, report, cancellation)
        else:
            batch = self._run_parallel(jobs, opts, report, cancellation, parallelism)
        report.summary(batch)
        return batch

    def _validate_target(self, target_format: ImageFormat | str) -> ImageFormat:
        if isinstance(target_format, ImageFormat):
            return target_format
        try:
            return parse_format(target_format)
        except UnsupportedFormatError as exc:
            raise BatchError(
                "UNSUPPORTED_TARGET",
                f"Unsupported target format: {target_format}. "
                f"Supported formats: {', '.join(supported_formats())}",
            ) from exc

    def _validate_quality(self, quality: int | None) -> None:
        if quality is not None and not 1 <= quality <= 100:
            raise BatchError("INVALID_QUALITY", f"Quality must be between 1 and 100, got {quality}")

    def _collect_inputs(
        self, source: Path, recursive: bool, report: BatchReporter
    ) -> tuple[list[Path], Path | None]:
        if not source.exists():
            raise BatchError("NOT_FOUND", f"Input path does not exist: {source}")
        if source.is_dir():
            report.info(f"Scanning directory: {source}{' (recursive)' if recursive else ''}")
            try:
                files = discover_images(source, recursive)
            except OSError as exc:
                raise BatchError("DISCOVERY_FAILED", f"Cannot read directory {source}: {exc}") from exc
            if not files:
                report.warning("No supported images found in the directory.")
                return [], source
            report.info(f"Found {len(files)} images to convert.")
            return files, source
        if source.is_file():
            if format_for_path(source) is None:
                raise BatchError(
                    "UNSUPPORTED_INPUT",
                    f"Unsupported file format: {source.suffix or '<none>'}. "
                    f"Supported formats: {', '.join(supported_formats())}",
                )
            return [source], None
        raise BatchError("INVALID_INPUT", "Input is neither a file nor a directory.")

    def _prepare_output_root(self, output_dir: Path | None) -> Path | None:
        if output_dir is None:
            return None
        root = Path(os.path.abspath(output_dir))
        try:
            return ensure_directory(root)
        except OSError as exc:
            raise BatchError("OUTPUT_DIR_FAILED", f"Cannot create output folder {root}: {exc}") from exc

    def _execute(self, job: ConversionJob, options: ConversionOptions) -> ConversionResult:
        start = time.perf_counter()
        try:
            return self.convert_file(job, options)
        except ConversionError as exc:
            return ConversionResult(
                source=job.input_path,
                output_path=None,
                succeeded=False,
                error_code=exc.code,
                message=str(exc),
                elapsed_ms=(time.perf_counter() - start) * 1000,
            )
        except Exception as exc:
            return ConversionResult(
                source=job.input_path,
                output_path=None,
                succeeded=False,
                error_code="UNEXPECTED",
                message=str(exc) or exc.__class__.__name__,
                elapsed_ms=(time.perf_counter() - start) * 1000,
            )

    def _execute_unless_cancelled(
        self, job: ConversionJob, options: ConversionOptions, cancellation: Event | None
    ) -> ConversionResult | None:
        if cancellation is not None and cancellation.is_set():
            return None
        return self._execute(job, options)

    def _record(
        self, job: ConversionJob, result: ConversionResult, batch: BatchResult, report: BatchReporter
    ) -> None:
        batch.record(result)
        report.file_finished(job, result)
        if self._run_logger is not None:
            self._run_logger.append(RunLogEntry.from_result(job, result))

    def _run_sequential(
        self,
        jobs: Sequence[ConversionJob],
        options: ConversionOptions,
        report: BatchReporter,
        cancellation: Event | None,
    ) -> BatchResult:
        batch = BatchResult()
        for index, job in enumerate(jobs):
            if cancellation is not None and cancellation.is_set():
                batch.skipped = len(jobs) - index
                break
            report.file_started(job)
            self._record(job, self._execute(job, options), batch, report)
        return batch

    def _run_parallel(
        self,
        jobs: Sequence[ConversionJob],
        options: ConversionOptions,
        report: BatchReporter,
        cancellation: Event | None,
        parallelism: int,
    ) -> BatchResult:
        batch = BatchResult()
        with concurrent.futures.ThreadPoolExecutor(max_workers=parallelism) as executor:
            future_map: dict[concurrent.futures.Future[ConversionResult | None], ConversionJob] = {}
            for job in jobs:
                report.file_started(job)
                future_map[executor.submit(self._execute_unless_cancelled, job, options, cancellation)] = job
            for future in concurrent.futures.as_completed(future_map):
                job = future_map[future]
                result = future.result()
                if result is None:
                    batch.skipped += 1
                    continue
                self._record(job, result, batch, report)
        return batch


__all__ = [
    "BatchError",
    "ConversionError",
    "ConversionService",
]
