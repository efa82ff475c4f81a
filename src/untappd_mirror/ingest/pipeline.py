"""
Sync Pipeline Orchestrator.

Pulls pages from a check-in source, drops check-ins that are already
stored, fans the rest out to a bounded worker pool and advances the
"latest" cursor once per run.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from ..models.checkins import CheckinRecord
from ..models.runs import OutcomeStatus, ProcessingOutcome, SyncRun
from ..photos.transcoder import transcode_to_webp
from ..sources.protocol import CheckinPage, CheckinSource, StopReason
from ..storage.protocol import StorageError
from ..utils.cancel import CancellationToken, RunCancelledError
from .dedup import DedupOracle

if TYPE_CHECKING:
    from ..photos.acquirer import PhotoAcquirer
    from ..storage.checkins import CheckinStore

logger = structlog.get_logger(__name__)

DEFAULT_WORKERS = 10
STOP_MAX_PAGES = "max_pages"

Transcoder = Callable[[bytes], bytes]


@dataclass
class PipelineStats:
    """Statistics from a pipeline run."""

    processed: int = 0
    skipped: int = 0
    failed: int = 0
    pages_fetched: int = 0
    cursor_advanced: bool = False
    cursor_errors: int = 0
    stop_reason: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def total(self) -> int:
        """Check-ins seen by the run."""
        return self.processed + self.skipped + self.failed

    def record(self, outcome: ProcessingOutcome) -> None:
        if outcome.status == OutcomeStatus.SUCCESS:
            self.processed += 1
        elif outcome.status == OutcomeStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1


@dataclass
class PipelineOptions:
    """Options controlling pipeline behavior.

    Attributes:
        workers: Worker pool width; None or non-positive means the default
        advance_cursor: Resume from and update the "latest" cursor
        max_pages: Stop after this many pages (None for no limit)
        dry_run: Dedup only; upload nothing and leave the cursor alone
    """

    workers: int | None = DEFAULT_WORKERS
    advance_cursor: bool = True
    max_pages: int | None = None
    dry_run: bool = False

    def __post_init__(self) -> None:
        if self.workers is None or self.workers <= 0:
            self.workers = DEFAULT_WORKERS


class SyncPipeline:
    """Orchestrates the mirror from check-in source to object storage.

    Pages are fetched one after another on the calling thread. Each
    page's new check-ins go to a thread pool; the page is drained before
    the next one is requested.

    Usage:
        source = UntappdSource(access_token)
        store = CheckinStore(create_object_store(settings.storage))
        pipeline = SyncPipeline(source, store, PhotoAcquirer(placeholder))

        with pipeline:
            stats = pipeline.run()
            print(f"Mirrored {stats.processed} check-ins")
    """

    def __init__(
        self,
        source: CheckinSource,
        store: CheckinStore,
        acquirer: PhotoAcquirer,
        options: PipelineOptions | None = None,
        cancel: CancellationToken | None = None,
        transcode: Transcoder = transcode_to_webp,
    ):
        """Initialize pipeline.

        Args:
            source: Check-in source (Untappd feed, export file, static batch)
            store: Check-in store over the object storage backend
            acquirer: Photo downloader
            options: Pipeline configuration options
            cancel: Cancellation token shared with the source and workers
            transcode: bytes -> bytes encoder for the secondary format
        """
        self.source = source
        self.store = store
        self.acquirer = acquirer
        self.options = options or PipelineOptions()
        self.cancel = cancel or CancellationToken()
        self.transcode = transcode

        self.dedup = DedupOracle(store.objects)
        self.current_run: SyncRun | None = None
        self._cursor_attempted = False
        self._slots = threading.BoundedSemaphore(self.workers)

    @property
    def workers(self) -> int:
        return self.options.workers or DEFAULT_WORKERS

    def __enter__(self) -> SyncPipeline:
        """Context manager entry: connect source."""
        self.source.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit: close source."""
        self.source.close()

    def run(self) -> PipelineStats:
        """Execute the pipeline.

        Returns:
            PipelineStats with run metrics

        Raises:
            FeedError: If a page cannot be fetched or decoded
            StorageError: If the persisted cursor cannot be read
            RunCancelledError: If the run was cancelled
        """
        stats = PipelineStats()
        start_time = time.monotonic()
        run = SyncRun(source_name=self.source.source_name)
        self.current_run = run
        self._cursor_attempted = False
        self._slots = threading.BoundedSemaphore(self.workers)

        logger.info(
            "pipeline_started",
            source=self.source.source_name,
            workers=self.workers,
            advance_cursor=self.options.advance_cursor,
            dry_run=self.options.dry_run,
        )

        executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="mirror")
        try:
            # The persisted "latest" id bounds what the source serves; the
            # page cursor is the source's own token.
            since_id = None
            if self.options.advance_cursor:
                since_id = self.store.get_cursor()
                run.cursor_before = since_id

            cursor = None

            while True:
                self.cancel.raise_if_cancelled()

                if self.options.max_pages and stats.pages_fetched >= self.options.max_pages:
                    stats.stop_reason = STOP_MAX_PAGES
                    break

                page = self.source.fetch_page(cursor, since_id=since_id)
                stats.pages_fetched += 1
                logger.debug(
                    "page_received",
                    page=stats.pages_fetched,
                    items=len(page),
                    cursor=cursor,
                    since_id=since_id,
                    stop=page.stop.value if page.stop else None,
                )

                if page.items:
                    self._process_page(executor, page, stats)

                if page.is_last:
                    stats.stop_reason = (page.stop or StopReason.EXHAUSTED).value
                    break
                cursor = page.next_cursor

        except RunCancelledError:
            stats.elapsed_seconds = time.monotonic() - start_time
            self._finish_run(run, stats)
            run.cancel()
            logger.warning("pipeline_cancelled", **run.summary_dict())
            raise
        except Exception as e:
            stats.elapsed_seconds = time.monotonic() - start_time
            self._finish_run(run, stats)
            run.fail(str(e))
            logger.error("pipeline_failed", error=str(e), **run.summary_dict())
            raise
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        stats.elapsed_seconds = time.monotonic() - start_time
        self._finish_run(run, stats)
        run.complete()
        logger.info("pipeline_completed", **run.summary_dict())
        return stats

    def _process_page(
        self,
        executor: ThreadPoolExecutor,
        page: CheckinPage,
        stats: PipelineStats,
    ) -> None:
        """Dedup, dispatch and drain one page."""
        futures: list[Future[ProcessingOutcome]] = []

        for record in page.items:
            outcome = self._dedup(record)
            if outcome is not None:
                stats.record(outcome)
                continue

            if self.options.dry_run:
                logger.info("checkin_would_mirror", checkin_id=record.checkin_id)
                stats.record(ProcessingOutcome.success(record.checkin_id))
                continue

            self._acquire_slot()
            try:
                futures.append(executor.submit(self._process, record))
            except RuntimeError:
                self._slots.release()
                raise

        self.cancel.raise_if_cancelled()

        # The feed is most recent first, so the page's first item is the
        # newest check-in this run will see.
        if not self._cursor_attempted:
            self._cursor_attempted = True
            self._advance_cursor(page.items[0], stats)

        for future in as_completed(futures):
            stats.record(future.result())

    def _dedup(self, record: CheckinRecord) -> ProcessingOutcome | None:
        """Skip or fail an already-stored check-in; None means process it."""
        try:
            if self.dedup.exists(record.checkin_id, record.created_at):
                logger.debug("checkin_skipped", checkin_id=record.checkin_id)
                return ProcessingOutcome.skipped(record.checkin_id)
        except StorageError as e:
            logger.error("dedup_failed", checkin_id=record.checkin_id, error=str(e))
            return ProcessingOutcome.failed(record.checkin_id, str(e))
        return None

    def _acquire_slot(self) -> None:
        while not self._slots.acquire(timeout=0.1):
            self.cancel.raise_if_cancelled()

    def _process(self, record: CheckinRecord) -> ProcessingOutcome:
        """Worker: acquire, upload original, transcode, upload transcoded."""
        try:
            self.cancel.raise_if_cancelled()
            data = self.acquirer.acquire(record.photo_url, cancel=self.cancel)
            self.store.put_original(data, record)

            self.cancel.raise_if_cancelled()
            transcoded = self.transcode(data)
            self.store.put_transcoded(transcoded, record)
        except RunCancelledError:
            raise
        except Exception as e:
            logger.error(
                "checkin_failed",
                checkin_id=record.checkin_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ProcessingOutcome.failed(record.checkin_id, str(e))
        finally:
            self._slots.release()

        logger.info(
            "checkin_mirrored",
            checkin_id=record.checkin_id,
            key=record.storage_key(),
            placeholder=record.photo_url is None,
        )
        return ProcessingOutcome.success(record.checkin_id)

    def _advance_cursor(self, record: CheckinRecord, stats: PipelineStats) -> None:
        if not self.options.advance_cursor or self.options.dry_run:
            return
        try:
            written = self.store.set_cursor(record.checkin_id, record.created_at)
        except (StorageError, ValueError) as e:
            stats.cursor_errors += 1
            logger.error("cursor_update_failed", checkin_id=record.checkin_id, error=str(e))
            return

        stats.cursor_advanced = written
        if written and self.current_run is not None:
            self.current_run.cursor_after = record.checkin_id

    def _finish_run(self, run: SyncRun, stats: PipelineStats) -> None:
        run.processed = stats.processed
        run.skipped = stats.skipped
        run.failed = stats.failed
        run.pages_fetched = stats.pages_fetched
        run.stop_reason = stats.stop_reason


def regenerate_transcoded(
    store: CheckinStore,
    record: CheckinRecord,
    transcode: Transcoder = transcode_to_webp,
) -> str:
    """Rebuild the transcoded photo of a stored check-in from its original.

    The new object carries the original's stored attributes, so only the
    identifier and timestamp of ``record`` need to be accurate.

    Returns:
        Key of the rewritten transcoded object

    Raises:
        ObjectNotFoundError: If the original is not stored
        TranscodeError: If the original cannot be decoded
    """
    metadata = store.get_original_metadata(record)
    data = store.get_original(record)
    key = store.put_transcoded(transcode(data), record, metadata=metadata)
    logger.info("checkin_retranscoded", checkin_id=record.checkin_id, key=key)
    return key


def run_sync(
    source: CheckinSource,
    store: CheckinStore,
    acquirer: PhotoAcquirer,
    *,
    workers: int | None = None,
    advance_cursor: bool = True,
    max_pages: int | None = None,
    dry_run: bool = False,
    cancel: CancellationToken | None = None,
    transcode: Transcoder = transcode_to_webp,
) -> PipelineStats:
    """Convenience function to run the sync pipeline.

    Args:
        source: Check-in source
        store: Check-in store
        acquirer: Photo downloader
        workers: Worker pool width
        advance_cursor: Resume from and update the cursor
        max_pages: Maximum pages to fetch
        dry_run: If True, don't write to storage
        cancel: Cancellation token
        transcode: Secondary format encoder

    Returns:
        PipelineStats with run metrics
    """
    options = PipelineOptions(
        workers=workers,
        advance_cursor=advance_cursor,
        max_pages=max_pages,
        dry_run=dry_run,
    )

    pipeline = SyncPipeline(source, store, acquirer, options, cancel=cancel, transcode=transcode)

    with pipeline:
        return pipeline.run()
