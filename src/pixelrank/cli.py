"""Command-line interface for PixelRank."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
import structlog
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pixelrank import __version__
from pixelrank.analysis.processor import ImageRecordProcessor
from pixelrank.config.config import Config, load_config
from pixelrank.exceptions import InputSourceError
from pixelrank.fetch.http_client import HttpClient
from pixelrank.observability.logging import configure_logging
from pixelrank.observability.metrics import start_metrics_server
from pixelrank.pipeline import Pipeline, PipelineSummary

console = Console()
logger = structlog.get_logger(__name__)

EXIT_INPUT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_CANCELLED = 130


def _load(ctx: click.Context) -> Config:
    """Load configuration once per invocation and apply the global CLI overrides."""
    if "config" not in ctx.obj:
        try:
            config = load_config(ctx.obj["config_path"])
        except (ValidationError, FileNotFoundError) as e:
            console.print(f"[red]Invalid configuration: {e}[/red]")
            sys.exit(EXIT_CONFIG_ERROR)
        if ctx.obj["log_level"]:
            config.monitoring = config.monitoring.model_copy(update={"log_level": ctx.obj["log_level"]})
        configure_logging(config.monitoring)
        ctx.obj["config"] = config
    return ctx.obj["config"]


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """PixelRank - find the three most common colors of many images."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None
    ctx.obj["log_level"] = log_level.upper() if log_level else None


@cli.command()
@click.option("--input", "-i", "input_location", help="Local path or URL listing one image URL per line")
@click.option("--output", "-o", "output_path", type=click.Path(dir_okay=False), help="Result file")
@click.option("--concurrency", "-n", type=click.IntRange(min=1), help="Maximum images processed at once")
@click.pass_context
def run(
    ctx: click.Context,
    input_location: Optional[str],
    output_path: Optional[str],
    concurrency: Optional[int],
) -> None:
    """Analyze every image listed in the input and write one line per image."""
    config = _load(ctx)

    overrides: Dict[str, Any] = {}
    if input_location:
        overrides["input_location"] = input_location
    if output_path:
        overrides["output_path"] = Path(output_path)
    if concurrency:
        overrides["concurrency_limit"] = concurrency
    if overrides:
        config.pipeline = config.pipeline.model_copy(update=overrides)

    if config.monitoring.prometheus_port:
        start_metrics_server(config.monitoring.prometheus_port)

    pipeline = Pipeline(config)

    async def run_pipeline() -> PipelineSummary:
        pipeline.install_signal_handlers()
        try:
            return await pipeline.run()
        finally:
            pipeline.restore_signal_handlers()

    try:
        summary = asyncio.run(run_pipeline())
    except InputSourceError as e:
        console.print(f"[red]Cannot read input: {e.reason}[/red] ({e.location})")
        sys.exit(EXIT_INPUT_ERROR)

    border = "yellow" if summary.cancelled else "green"
    title = "Cancelled" if summary.cancelled else "Results"
    console.print(
        Panel(
            f"Written: {summary.written}\n"
            f"Succeeded: {summary.succeeded}\n"
            f"Failed: {summary.failed}\n"
            f"Duration: {summary.duration:.2f}s\n"
            f"Output: {summary.output_path}",
            title=title,
            border_style=border,
        )
    )
    if summary.cancelled:
        sys.exit(EXIT_CANCELLED)


@cli.command()
@click.argument("locations", nargs=-1, required=True)
@click.pass_context
def analyze(ctx: click.Context, locations: tuple[str, ...]) -> None:
    """Analyze single image locations and print their result lines."""
    config = _load(ctx)

    async def run_analysis() -> list[str]:
        async with HttpClient(config.fetch) as http_client:
            processor = ImageRecordProcessor(http_client)
            records = await asyncio.gather(*(processor.process(location) for location in locations))
        return [record.to_line() for record in records]

    for line in asyncio.run(run_analysis()):
        click.echo(line)


@cli.command("validate-config")
@click.pass_context
def validate_config(ctx: click.Context) -> None:
    """Validate and show the effective configuration."""
    config = _load(ctx)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")
    for section in ("pipeline", "fetch", "monitoring"):
        for key, value in getattr(config, section).model_dump().items():
            table.add_row(f"{section}.{key}", str(value))
    console.print(table)
    console.print("[green]Configuration is valid![/green]")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
