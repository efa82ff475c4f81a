"""
Data models for the Untappd mirror.

- CheckinRecord: Validated, immutable check-in
- ProcessingOutcome: Per-item result of a worker
- SyncRun: Metadata about a pipeline run
"""

from untappd_mirror.models.checkins import (
    ORIGINAL_EXTENSION,
    SENTINEL_VENUE,
    TRANSCODED_EXTENSION,
    Beer,
    Brewery,
    CheckinRecord,
    Location,
    Venue,
    format_latlng,
    storage_key,
)
from untappd_mirror.models.runs import OutcomeStatus, ProcessingOutcome, RunStatus, SyncRun

__all__ = [
    "ORIGINAL_EXTENSION",
    "SENTINEL_VENUE",
    "TRANSCODED_EXTENSION",
    "Beer",
    "Brewery",
    "CheckinRecord",
    "Location",
    "OutcomeStatus",
    "ProcessingOutcome",
    "RunStatus",
    "SyncRun",
    "Venue",
    "format_latlng",
    "storage_key",
]
