"""
Command-line interface for the Untappd mirror.

This module provides the main CLI entry points using Click.

Commands:
- sync: Mirror new check-ins from the Untappd feed
- backfill: Mirror check-ins from a CSV export
- cursor: Show the persisted "latest" cursor
- retranscode: Rebuild the WebP copy of a stored check-in
- config-show: Show the effective configuration

Example:
    $ untappd-mirror --help
    $ untappd-mirror sync --workers 4
    $ untappd-mirror backfill --csv untappd-export.csv
"""

from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

from untappd_mirror import __version__
from untappd_mirror.config import get_settings, load_settings
from untappd_mirror.ingest import PipelineOptions, PipelineStats, SyncPipeline, regenerate_transcoded
from untappd_mirror.models import CheckinRecord
from untappd_mirror.photos import PhotoAcquirer, TranscodeError, transcode_to_webp
from untappd_mirror.sources import FeedError, FileSource, UntappdSource
from untappd_mirror.storage import CheckinStore, ObjectNotFoundError, StorageError, create_object_store
from untappd_mirror.utils.cancel import CancellationToken, RunCancelledError
from untappd_mirror.utils.logging import bind_context, get_logger, setup_logging

if TYPE_CHECKING:
    from untappd_mirror.config import Settings
    from untappd_mirror.sources import CheckinSource

console = Console()

EXIT_FAILURE = 1
EXIT_CANCELLED = 130


@click.group()
@click.version_option(version=__version__, prog_name="untappd-mirror")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file path",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """Untappd mirror CLI.

    Mirror Untappd check-ins and their photos into S3-compatible object
    storage, partitioned by date.
    """
    ctx.ensure_object(dict)

    if config:
        settings = load_settings(config)
    else:
        settings = get_settings()

    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose

    log_level = "DEBUG" if verbose else settings.logging.level
    setup_logging(
        level=log_level,
        format=settings.logging.format,
        include_timestamp=settings.logging.include_timestamp,
        include_location=settings.logging.include_location,
    )


@contextmanager
def _cancel_on_signals(token: CancellationToken) -> Iterator[None]:
    """Cancel the token on SIGINT/SIGTERM for the duration of the block."""

    def handler(signum: int, frame: object) -> None:
        get_logger(__name__).warning("signal_received", signal=signal.Signals(signum).name)
        token.cancel()

    previous = {sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


def _require(ctx: click.Context, missing: list[str]) -> None:
    if missing:
        console.print("[red]Error:[/red] missing configuration:")
        for name in missing:
            console.print(f"  - {name}")
        ctx.exit(EXIT_FAILURE)


def _checkin_store(settings: Settings) -> CheckinStore:
    return CheckinStore(create_object_store(settings.storage))


def _acquirer(settings: Settings) -> PhotoAcquirer:
    return PhotoAcquirer(
        settings.photos.placeholder_path,
        timeout_seconds=settings.photos.timeout_seconds,
        max_bytes=settings.photos.max_bytes,
        user_agent=settings.photos.user_agent,
    )


def _run_pipeline(
    ctx: click.Context,
    title: str,
    source: CheckinSource,
    options: PipelineOptions,
    token: CancellationToken,
) -> None:
    """Run a pipeline, print its summary and map failures to exit codes."""
    settings = ctx.obj["settings"]
    logger = get_logger(__name__)

    console.print(f"[bold]Untappd Mirror - {title}[/bold]")
    console.print(f"Bucket: [cyan]{settings.storage.bucket_name}[/cyan]")
    if options.dry_run:
        console.print("[yellow]Dry run: nothing will be uploaded[/yellow]")

    store = _checkin_store(settings)
    transcode = partial(transcode_to_webp, quality=settings.photos.webp_quality)

    exit_code = 0
    stats: PipelineStats | None = None
    with _acquirer(settings) as acquirer, _cancel_on_signals(token):
        pipeline = SyncPipeline(source, store, acquirer, options, cancel=token, transcode=transcode)
        try:
            with pipeline, console.status("[bold green]Mirroring check-ins..."):
                stats = pipeline.run()
        except RunCancelledError:
            console.print("[yellow]Cancelled[/yellow]")
            exit_code = EXIT_CANCELLED
        except (FeedError, StorageError, FileNotFoundError, ValueError) as e:
            logger.error("run_failed", error=str(e))
            console.print(f"[red]Error:[/red] {e}")
            exit_code = EXIT_FAILURE

    run = pipeline.current_run
    if run is not None:
        _print_summary(run.summary_dict(), stats)

    if exit_code:
        ctx.exit(exit_code)


def _print_summary(summary: dict, stats: PipelineStats | None) -> None:
    table = Table(title="Run Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Status", str(summary["status"]))
    table.add_row("Processed", f"[green]{summary['processed']:,}[/green]")
    table.add_row("Skipped", f"{summary['skipped']:,}")
    table.add_row("Failed", f"[red]{summary['failed']:,}[/red]" if summary["failed"] else "0")
    table.add_row("Pages", f"{summary['pages']:,}")
    table.add_row("Stop Reason", str(summary["stop_reason"] or "-"))
    table.add_row("Cursor", f"{summary['cursor_before'] or '-'} -> {summary['cursor_after'] or '-'}")
    if stats is not None:
        table.add_row("Duration", f"{stats.elapsed_seconds:.1f}s")
        if stats.cursor_errors:
            table.add_row("Cursor Errors", f"[red]{stats.cursor_errors}[/red]")

    console.print()
    console.print(table)


@main.command("sync")
@click.option("--workers", "-w", type=int, help="Worker pool width (overrides config)")
@click.option("--max-pages", type=int, help="Stop after this many feed pages")
@click.option("--dry-run", is_flag=True, help="Check for new check-ins without uploading")
@click.pass_context
def sync(ctx: click.Context, workers: int | None, max_pages: int | None, dry_run: bool) -> None:
    """Mirror new check-ins from the Untappd feed.

    Resumes after the persisted cursor and advances it to the newest
    check-in seen.
    """
    settings = ctx.obj["settings"]
    _require(ctx, settings.missing_for_sync())

    token = CancellationToken()
    bind_context(command="sync")

    source = UntappdSource(
        settings.untappd.access_token.get_secret_value(),
        api_url=settings.untappd.api_url,
        timeout_seconds=settings.untappd.timeout_seconds,
        cancel=token,
    )
    options = PipelineOptions(
        workers=workers or settings.pipeline.workers,
        advance_cursor=True,
        max_pages=max_pages or settings.pipeline.max_pages,
        dry_run=dry_run,
    )
    _run_pipeline(ctx, "Sync", source, options, token)


@main.command("backfill")
@click.option(
    "--csv",
    "csv_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Untappd CSV export to import",
)
@click.option("--workers", "-w", type=int, help="Worker pool width (overrides config)")
@click.option("--dry-run", is_flag=True, help="Check for new check-ins without uploading")
@click.pass_context
def backfill(ctx: click.Context, csv_path: Path, workers: int | None, dry_run: bool) -> None:
    """Mirror check-ins from a CSV export.

    Check-ins already in the bucket are skipped. The cursor is never
    touched.
    """
    settings = ctx.obj["settings"]
    _require(ctx, settings.missing_for_storage())

    token = CancellationToken()
    bind_context(command="backfill", csv=str(csv_path))

    source = FileSource(csv_path, page_size=settings.pipeline.page_size)
    options = PipelineOptions(
        workers=workers or settings.pipeline.workers,
        advance_cursor=False,
        dry_run=dry_run,
    )
    _run_pipeline(ctx, "Backfill", source, options, token)

    if source.skipped_rows:
        console.print(f"[yellow]{source.skipped_rows} malformed rows skipped[/yellow]")


@main.command("cursor")
@click.pass_context
def cursor(ctx: click.Context) -> None:
    """Show the persisted "latest" cursor."""
    settings = ctx.obj["settings"]
    _require(ctx, settings.missing_for_storage())

    try:
        value = _checkin_store(settings).get_cursor()
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(EXIT_FAILURE)
        return

    if value is None:
        console.print("No cursor yet; the next sync starts from the most recent check-in.")
    else:
        console.print(f"Latest check-in: [cyan]{value}[/cyan]")


@main.command("retranscode")
@click.option("--id", "checkin_id", required=True, type=int, help="Check-in ID")
@click.option(
    "--date",
    "created_at",
    required=True,
    help="Check-in timestamp (e.g. '2025-11-01 18:30:00' or ISO 8601)",
)
@click.pass_context
def retranscode(ctx: click.Context, checkin_id: int, created_at: str) -> None:
    """Rebuild the WebP copy of a stored check-in from its original."""
    settings = ctx.obj["settings"]
    _require(ctx, settings.missing_for_storage())

    try:
        record = CheckinRecord(checkin_id=checkin_id, created_at=created_at)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(EXIT_FAILURE)
        return

    transcode = partial(transcode_to_webp, quality=settings.photos.webp_quality)
    try:
        key = regenerate_transcoded(_checkin_store(settings), record, transcode)
    except ObjectNotFoundError:
        console.print(f"[red]Error:[/red] no stored original at {record.storage_key()}")
        ctx.exit(EXIT_FAILURE)
        return
    except (StorageError, TranscodeError) as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(EXIT_FAILURE)
        return

    console.print(f"[green]✓[/green] Wrote {key}")


@main.command("config-show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration (secrets masked)."""
    settings = ctx.obj["settings"]

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for section, values in settings.model_dump(mode="json").items():
        if isinstance(values, dict):
            for name, value in values.items():
                table.add_row(f"{section}.{name}", "" if value is None else str(value))
        else:
            table.add_row(section, str(values))

    console.print(table)

    missing = settings.missing_for_sync()
    if missing:
        console.print(f"[yellow]Not set:[/yellow] {', '.join(missing)}")


if __name__ == "__main__":
    main()
