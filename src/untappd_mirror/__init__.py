"""
Untappd Mirror

Incrementally mirrors a user's Untappd check-ins into S3-compatible
object storage (AWS S3 or Cloudflare R2), keeping each check-in's photo
in its original form and as WebP under a date-partitioned key.

Features:
- Cursor-based incremental sync of the Untappd feed
- Backfill from the CSV export through the same pipeline
- Bounded worker pool for photo download, transcode and upload
- Idempotent: already-mirrored check-ins are skipped

Example:
    >>> from untappd_mirror import CheckinStore, SyncPipeline, UntappdSource
    >>> from untappd_mirror.photos import PhotoAcquirer
    >>> from untappd_mirror.storage import create_object_store
    >>>
    >>> store = CheckinStore(create_object_store(settings.storage))
    >>> with SyncPipeline(UntappdSource(token), store, PhotoAcquirer(path)) as pipeline:
    ...     stats = pipeline.run()

For more information, run:
    $ untappd-mirror --help
"""

__version__ = "1.0.0"

# Configuration
from untappd_mirror.config.settings import Settings, get_settings

# Pipeline
from untappd_mirror.ingest.pipeline import PipelineOptions, PipelineStats, SyncPipeline

# Core models
from untappd_mirror.models.checkins import CheckinRecord
from untappd_mirror.models.runs import SyncRun

# Sources
from untappd_mirror.sources.file import FileSource
from untappd_mirror.sources.protocol import CheckinSource
from untappd_mirror.sources.static import StaticSource
from untappd_mirror.sources.untappd import UntappdSource

# Storage
from untappd_mirror.storage.checkins import CheckinStore
from untappd_mirror.storage.protocol import ObjectStore

__all__ = [
    "CheckinRecord",
    "CheckinSource",
    "CheckinStore",
    "FileSource",
    "ObjectStore",
    "PipelineOptions",
    "PipelineStats",
    "Settings",
    "StaticSource",
    "SyncPipeline",
    "SyncRun",
    "UntappdSource",
    "__version__",
    "get_settings",
]
