"""
Export-file source for the Untappd mirror.

Reads the CSV check-in export the service offers to its users and
serves the rows as pages, so a backfill runs through the very same
pipeline as the incremental sync.

Rows are mapped to CheckinRecord by column name. Malformed rows (wrong
number of columns, unparseable checkin_id or created_at) are skipped
with a logged reason; they never abort the import.

Example:
    >>> from untappd_mirror.sources import FileSource
    >>>
    >>> source = FileSource("untappd-export.csv")
    >>> source.connect()
    >>> print(f"{len(source)} check-ins to backfill")
    >>> page = source.fetch_page(None)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import ValidationError

from untappd_mirror.models.checkins import CheckinRecord
from untappd_mirror.sources.protocol import CheckinPage
from untappd_mirror.sources.static import StaticSource
from untappd_mirror.utils.logging import get_logger

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("checkin_id", "created_at")


class FileSource:
    """Source over a CSV check-in export.

    Attributes:
        source_name: Always "file"
        path: Path to the export file
        page_size: Records per page
        skipped_rows: Number of malformed rows dropped by connect()
    """

    source_name = "file"

    def __init__(self, path: str | Path, *, page_size: int = 50):
        self.path = Path(path)
        self.page_size = page_size
        self.skipped_rows = 0

        self._batch: StaticSource | None = None

    def connect(self) -> None:
        """Read and validate the export file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If required columns are missing
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Export file not found: {self.path}")

        self.skipped_rows = 0
        records = list(self._read_records())
        self._batch = StaticSource(records, page_size=self.page_size)
        self._batch.connect()

        logger.info(
            "export_loaded",
            path=str(self.path),
            records=len(records),
            skipped=self.skipped_rows,
        )

    def _read_records(self):
        """Yield a CheckinRecord per valid export row."""

        def skip_bad_line(fields: list[str]) -> None:
            self.skipped_rows += 1
            logger.warning(
                "import_row_skipped",
                reason="column count mismatch",
                fields=len(fields),
            )
            return None

        df = pd.read_csv(
            self.path,
            dtype=str,
            keep_default_na=False,
            index_col=False,
            engine="python",
            on_bad_lines=skip_bad_line,
        )

        missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            raise ValueError(f"Export file is missing columns: {', '.join(missing)}")

        for position, (_, row) in enumerate(df.iterrows()):
            row_number = position + 2  # header is line 1
            row_dict: dict[str, Any] = row.to_dict()

            # short rows are padded with NaN by the parser
            if any(pd.isna(value) for value in row_dict.values()):
                self._skip(row_number, "column count mismatch")
                continue

            try:
                yield CheckinRecord.from_export_row(row_dict)
            except (ValidationError, ValueError) as e:
                self._skip(row_number, _first_error(e), checkin_id=row_dict.get("checkin_id"))

    def _skip(self, row_number: int, reason: str, **context: Any) -> None:
        self.skipped_rows += 1
        logger.warning("import_row_skipped", row=row_number, reason=reason, **context)

    def fetch_page(self, cursor: int | None, since_id: int | None = None) -> CheckinPage:
        """Return the page of export records starting at offset ``cursor``."""
        if self._batch is None:
            raise RuntimeError("Source not connected. Call connect() first.")
        return self._batch.fetch_page(cursor, since_id)

    def close(self) -> None:
        """Drop the loaded batch."""
        self._batch = None

    def __len__(self) -> int:
        return len(self._batch) if self._batch is not None else 0

    def __repr__(self) -> str:
        return f"FileSource({str(self.path)!r})"


def _first_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        first = error.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return str(error)
