"""
Sync pipeline for the Untappd mirror.

This module orchestrates the flow from source to storage:

1. Read the persisted "latest" cursor
2. Fetch a page of check-ins from the source
3. Skip check-ins whose original is already stored
4. Download, upload, transcode and upload the rest in a worker pool
5. Advance the cursor once, to the newest check-in of the first page
6. Repeat until the source is exhausted or rate limited

Example:
    >>> from untappd_mirror.ingest import SyncPipeline
    >>> from untappd_mirror.sources import UntappdSource
    >>> from untappd_mirror.storage import CheckinStore, create_object_store
    >>>
    >>> source = UntappdSource(access_token)
    >>> store = CheckinStore(create_object_store(settings.storage))
    >>>
    >>> with SyncPipeline(source, store, PhotoAcquirer(placeholder)) as pipeline:
    ...     stats = pipeline.run()
    >>> print(f"Mirrored {stats.processed} check-ins")

The pipeline is designed to be:
- Idempotent: A second run against an unchanged feed uploads nothing
- Monotonic: The cursor never moves backwards
- Bounded: At most ``workers`` check-ins are in flight at once
"""

from untappd_mirror.ingest.dedup import DedupOracle
from untappd_mirror.ingest.pipeline import (
    DEFAULT_WORKERS,
    PipelineOptions,
    PipelineStats,
    SyncPipeline,
    regenerate_transcoded,
    run_sync,
)

__all__ = [
    "DEFAULT_WORKERS",
    "DedupOracle",
    "PipelineOptions",
    "PipelineStats",
    "SyncPipeline",
    "regenerate_transcoded",
    "run_sync",
]
