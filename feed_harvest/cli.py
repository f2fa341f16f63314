"""
Command-line interface for feed_harvest.

Uses Typer to run configured sources and list them. Supports loading .env
files for renderer credentials (e.g. CRAWL4AI_API_URL).
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import load_config, validate_batch
from .core.errors import ConfigError
from .output.writer import write_records, write_run_summary
from .logging_utils import setup_logging
from .runner import HarvestReport, run_sources
from .sources import load_sources
from .tracing import flush, setup_langfuse

try:
    from dotenv import load_dotenv
except Exception:  # noqa: BLE001
    load_dotenv = None

app = typer.Typer(add_completion=False)
console = Console()


@app.command()
def run(
    sources: Path = typer.Option(..., "--sources", "-s", exists=True, readable=True),
    only: list[str] | None = typer.Option(
        None, "--only", help="Run only the named source (repeatable)."
    ),
    output: Path = typer.Option(Path("out"), "--output", "-o"),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    backend: str | None = typer.Option(
        None, "--backend", help="Renderer backend: httpx, playwright or crawl4ai."
    ),
    batch_size: int | None = typer.Option(None, "--batch-size", help="Records kept per source."),
    concurrency: int | None = typer.Option(
        None, "--concurrency", help="Detail pages visited at once."
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Per-navigation timeout in seconds."
    ),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_format: str | None = typer.Option(
        None, "--log-format", help="Log file format: jsonl or plain."
    ),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Enable or disable file logging."
    ),
):
    """Harvest article records from every configured source.

    Each source's records are written to OUTPUT/<name>.json and a run summary
    is appended to OUTPUT/runs.jsonl. Exits with code 1 if any source failed.
    """
    if load_dotenv is not None:
        load_dotenv()

    try:
        cfg = load_config(str(config) if config else None)
        source_list = load_sources(sources)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=2)

    # Override with CLI options
    if backend:
        cfg.render.backend = backend
    if batch_size is not None:
        cfg.batch.batch_size = batch_size
    if concurrency is not None:
        cfg.batch.concurrency = concurrency
    if timeout is not None:
        cfg.batch.navigation_timeout_seconds = timeout
    if log_level:
        cfg.logging.level = log_level
    if log_format:
        cfg.logging.format = log_format
    if log_file is not None:
        cfg.logging.file = log_file

    try:
        validate_batch(cfg.batch)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=2)

    if only:
        known = {source.name for source in source_list}
        missing = sorted(set(only) - known)
        if missing:
            console.print(f"[red]Unknown source(s):[/red] {', '.join(missing)}")
            raise typer.Exit(code=2)
        source_list = [source for source in source_list if source.name in only]

    logger = setup_logging(cfg.logging, output)
    setup_langfuse(cfg.langfuse)

    try:
        report = run_sources(source_list, cfg, logger=logger, show_progress=progress, console=console)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)
    finally:
        flush()

    for result in report.results:
        if result.ok or cfg.output.write_failed:
            write_records(result.records, output, result.source)
    write_run_summary(report.results, output / cfg.output.summary_file)

    _render_report(report)
    if report.failed:
        raise typer.Exit(code=1)


@app.command("sources")
def list_sources(
    sources: Path = typer.Option(..., "--sources", "-s", exists=True, readable=True),
):
    """Validate a sources file and list the sources it defines."""
    try:
        source_list = load_sources(sources)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=2)

    table = Table(title=f"{len(source_list)} source(s)")
    table.add_column("Name")
    table.add_column("Listing URL")
    table.add_column("Enrichment")
    for source in source_list:
        table.add_row(source.name, source.listing_url, "yes" if source.enrichment else "no")
    console.print(table)


def _render_report(report: HarvestReport) -> None:
    """Print a per-source summary table."""
    table = Table(title="Harvest summary")
    table.add_column("Source")
    table.add_column("State")
    table.add_column("Records", justify="right")
    table.add_column("Enriched", justify="right")
    table.add_column("Enrich failed", justify="right")
    table.add_column("Note")
    for result in report.results:
        note = result.failure or ("no items found" if result.empty else "")
        style = "red" if not result.ok else None
        table.add_row(
            result.source,
            result.state.value,
            str(len(result.records)),
            str(result.stats.enriched),
            str(result.stats.enrichment_failed),
            note,
            style=style,
        )
    console.print(table)


if __name__ == "__main__":
    app()
