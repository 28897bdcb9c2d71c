from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from .. import __version__
from ..config import AppConfig, load_config
from ..core import BatchError, ConversionService
from ..logging import ConsoleReporter
from ..models import ConversionOptions

console = Console()

app = typer.Typer(
    help="A fast and modern CLI tool to convert image formats.",
    add_completion=False,
)


def _load_config(path: Path | None) -> AppConfig:
    return load_config(path)


def parse_quality(value: str | None) -> int | None:
    """Parse ``--quality``; anything that is not an integer counts as absent."""

    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _version_callback(value: bool) -> None:
    if value:
        console.print(__version__)
        raise typer.Exit()


@app.command()
def convert(
    ctx: typer.Context,
    source: Path | None = typer.Argument(None, metavar="[INPUT]", help="Input file or directory"),
    to: str | None = typer.Option(
        None, "--to", "-t", help="Target image format (e.g., png, webp, jpg, avif)"
    ),
    out: Path | None = typer.Option(
        None, "--out", "-o", help="Output folder (default: same as input)"
    ),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Search directories recursively"),
    quality: str | None = typer.Option(
        None, "--quality", "-q", help="Quality of the output image (1-100) for supported formats"
    ),
    parallel: int | None = typer.Option(None, "--parallel", "-p", min=1, help="Parallel workers"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    if source is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    reporter = ConsoleReporter(console)
    if not to:
        reporter.error("You must specify a target format using --to <format>")
        raise typer.Exit(1)

    try:
        cfg = _load_config(config)
    except (OSError, TypeError, ValueError) as exc:
        reporter.error(f"Invalid configuration: {exc}")
        raise typer.Exit(1) from exc
    parsed_quality = parse_quality(quality)
    options = ConversionOptions(
        quality=parsed_quality if parsed_quality is not None else cfg.defaults.quality,
        recursive=recursive or cfg.defaults.recursive,
        output_dir=out,
        parallelism=parallel,
    )
    service = ConversionService(cfg)
    try:
        result = service.run(source, to.lower(), options, reporter=reporter)
    except BatchError as exc:
        reporter.error(str(exc))
        raise typer.Exit(1) from exc

    if result.failures and cfg.runtime.fail_on_error:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
