"""
Run tracking models for the Untappd mirror.

This module defines:
- OutcomeStatus / ProcessingOutcome: Per-item result of a worker
- SyncRun: Metadata and counters for one pipeline invocation

Neither is persisted; they feed logs and the end-of-run report.

Example:
    >>> from untappd_mirror.models import SyncRun
    >>>
    >>> run = SyncRun(source_name="untappd")
    >>> run.processed += 3
    >>> run.complete()
    >>> print(run.summary_dict())
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from untappd_mirror.utils.time import utcnow


class RunStatus(str, Enum):
    """Status of a sync run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class OutcomeStatus(str, Enum):
    """What happened to a single check-in during a run."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ProcessingOutcome:
    """Result of handling one check-in."""

    checkin_id: int
    status: OutcomeStatus
    reason: str | None = None

    @classmethod
    def success(cls, checkin_id: int) -> ProcessingOutcome:
        return cls(checkin_id, OutcomeStatus.SUCCESS)

    @classmethod
    def skipped(cls, checkin_id: int, reason: str = "already stored") -> ProcessingOutcome:
        return cls(checkin_id, OutcomeStatus.SKIPPED, reason)

    @classmethod
    def failed(cls, checkin_id: int, reason: str) -> ProcessingOutcome:
        return cls(checkin_id, OutcomeStatus.FAILED, reason)


class SyncRun(BaseModel):
    """Metadata about a sync or backfill run.

    Attributes:
        source_name: Name of the item source (untappd, file, static)
        started_at: When the run started
        completed_at: When the run ended (None while running)
        status: Current run status
        processed: Check-ins mirrored successfully
        skipped: Check-ins already present in the store
        failed: Check-ins that failed processing
        pages_fetched: Number of pages pulled from the source
        cursor_before: Persisted cursor read at the start
        cursor_after: Cursor written by this run (None if unchanged)
        stop_reason: Why pagination ended
        error_message: Error message if the run failed
    """

    model_config = ConfigDict(extra="ignore")

    source_name: str = Field(default="unknown", description="Item source name")
    started_at: datetime = Field(default_factory=utcnow, description="Run start time")
    completed_at: datetime | None = Field(default=None, description="Run end time")
    status: RunStatus = Field(default=RunStatus.RUNNING, description="Current run status")

    processed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    pages_fetched: int = Field(default=0, ge=0)

    cursor_before: int | None = None
    cursor_after: int | None = None
    stop_reason: str | None = None
    error_message: str | None = None

    @computed_field  # type: ignore[misc]
    @property
    def duration_seconds(self) -> float | None:
        """Run duration in seconds, or None while running."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    @computed_field  # type: ignore[misc]
    @property
    def total(self) -> int:
        """Number of check-ins seen by this run."""
        return self.processed + self.skipped + self.failed

    def complete(self, error: str | None = None) -> None:
        """Mark the run as finished, failed if an error is given."""
        self.completed_at = utcnow()
        if error:
            self.status = RunStatus.FAILED
            self.error_message = error
        else:
            self.status = RunStatus.COMPLETED

    def fail(self, error: str) -> None:
        """Mark the run as failed with an error message."""
        self.complete(error=error)

    def cancel(self) -> None:
        """Mark the run as cancelled."""
        self.completed_at = utcnow()
        self.status = RunStatus.CANCELLED

    def summary_dict(self) -> dict[str, Any]:
        """Key run statistics for logging/reporting."""
        return {
            "source": self.source_name,
            "status": self.status.value,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "pages": self.pages_fetched,
            "cursor_before": self.cursor_before,
            "cursor_after": self.cursor_after,
            "stop_reason": self.stop_reason,
            "duration_seconds": self.duration_seconds,
        }
