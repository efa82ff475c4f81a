"""
Check-in sources for the Untappd mirror.

All sources implement the CheckinSource protocol:

- UntappdSource: Paginated remote feed (incremental sync)
- FileSource: CSV export file (backfill)
- StaticSource: Pre-loaded batch (tests, scripted imports)

Example:
    >>> from untappd_mirror.sources import UntappdSource
    >>>
    >>> source = UntappdSource(access_token="...")
    >>> source.connect()
    >>> page = source.fetch_page(None, since_id=1234567)
    >>> for record in page.items:
    ...     print(record.checkin_id)

To implement a custom source, see `sources/protocol.py` for the interface.
"""

from untappd_mirror.sources.file import FileSource
from untappd_mirror.sources.protocol import (
    CheckinPage,
    CheckinSource,
    FeedError,
    StopReason,
)
from untappd_mirror.sources.static import StaticSource
from untappd_mirror.sources.untappd import UntappdSource

__all__ = [
    "CheckinPage",
    "CheckinSource",
    "FeedError",
    "FileSource",
    "StaticSource",
    "StopReason",
    "UntappdSource",
]
