"""
Check-in source protocol for the Untappd mirror.

A source answers one question: "give me the page of check-ins that
starts at this cursor and is newer than this check-in". Pages are
pulled one at a time; no source ever buffers the whole feed on behalf
of the pipeline.

Two positions are involved and they are never mixed up:

- ``since_id`` is the persisted "latest" check-in id. Every source
  honours it the same way: only check-ins with a larger id are served.
- ``cursor`` is the source's own page token (an offset, a ``min_id``),
  taken from ``CheckinPage.next_cursor`` and passed back unchanged.

Example - Implementing a custom source:
    >>> from untappd_mirror.sources import CheckinPage
    >>>
    >>> class MySource:
    ...     source_name = "my_source"
    ...
    ...     def connect(self) -> None:
    ...         self.client = MyClient()
    ...
    ...     def fetch_page(self, cursor, since_id=None):
    ...         items, next_cursor = self.client.page(cursor, newer_than=since_id)
    ...         return CheckinPage(items=tuple(items), next_cursor=next_cursor)
    ...
    ...     def close(self) -> None:
    ...         self.client.disconnect()
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from untappd_mirror.models import CheckinRecord


class FeedError(RuntimeError):
    """A page could not be fetched or decoded; the run cannot continue."""


class StopReason(str, Enum):
    """Why a source has no further pages. None of these are errors."""

    RATE_LIMITED = "rate_limited"
    EMPTY = "empty"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class CheckinPage:
    """One page of check-ins, most recent first.

    A page can carry items and a stop reason at the same time: the last
    page of the feed has items but no next-page token.

    Attributes:
        items: Check-ins on this page
        next_cursor: Cursor for the following page (None when stopping)
        stop: Reason there are no further pages, or None
    """

    items: tuple[CheckinRecord, ...] = ()
    next_cursor: int | None = None
    stop: StopReason | None = None

    @property
    def is_last(self) -> bool:
        """True when no further page should be requested."""
        return self.stop is not None or self.next_cursor is None

    def __len__(self) -> int:
        return len(self.items)


@runtime_checkable
class CheckinSource(Protocol):
    """Interface for check-in sources.

    Implementations:
    - UntappdSource: Paginated remote feed
    - StaticSource: Pre-loaded batch
    - FileSource: Export file (backfill)
    """

    @property
    def source_name(self) -> str:
        """Human-readable source identifier used in logs and run reports."""
        ...

    def connect(self) -> None:
        """Prepare the source (open clients, read files).

        Raises:
            FileNotFoundError: If a file-backed source has no input
            ValueError: If configuration is invalid
        """
        ...

    def fetch_page(self, cursor: int | None, since_id: int | None = None) -> CheckinPage:
        """Fetch the page that starts at ``cursor``.

        Args:
            cursor: Page token from the previous page, None for the first page
            since_id: Only serve check-ins newer than this id (None for all)

        Returns:
            CheckinPage

        Raises:
            FeedError: Transport or decode failure (fatal to the run)
            RunCancelledError: If the run was cancelled
        """
        ...

    def close(self) -> None:
        """Release resources. Safe to call multiple times."""
        ...
