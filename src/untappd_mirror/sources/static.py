"""
Static check-in source.

Serves a pre-loaded batch of records in fixed-size pages. The page
cursor is an offset into the records newer than ``since_id``; the
persisted "latest" id filters the batch the same way it bounds the
remote feed.

Example:
    >>> source = StaticSource(records, page_size=2)
    >>> source.connect()
    >>> page = source.fetch_page(None)
    >>> page.next_cursor
    2
"""

from __future__ import annotations

from collections.abc import Iterable

from untappd_mirror.models.checkins import CheckinRecord
from untappd_mirror.sources.protocol import CheckinPage, StopReason


class StaticSource:
    """Source over an in-memory batch of check-ins.

    Attributes:
        source_name: Always "static"
        page_size: Records per page
    """

    source_name = "static"

    def __init__(self, records: Iterable[CheckinRecord] = (), *, page_size: int = 50):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.page_size = page_size
        self._records: list[CheckinRecord] = list(records)
        self._connected = False

    @property
    def records(self) -> list[CheckinRecord]:
        return list(self._records)

    def connect(self) -> None:
        self._connected = True

    def fetch_page(self, cursor: int | None, since_id: int | None = None) -> CheckinPage:
        """Return the page starting at offset ``cursor`` (None = 0).

        Offsets count only the records newer than ``since_id``.
        """
        if not self._connected:
            raise RuntimeError("Source not connected. Call connect() first.")

        records = self._records
        if since_id is not None:
            records = [r for r in records if r.checkin_id > since_id]

        start = cursor or 0
        if start >= len(records):
            return CheckinPage(stop=StopReason.EMPTY)

        end = start + self.page_size
        items = tuple(records[start:end])
        if end >= len(records):
            return CheckinPage(items=items, stop=StopReason.EXHAUSTED)
        return CheckinPage(items=items, next_cursor=end)

    def close(self) -> None:
        self._connected = False

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"StaticSource(records={len(self._records)}, page_size={self.page_size})"
