"""
Check-in store: the pipeline's view of object storage.

Knows how check-ins map onto keys and metadata, and owns the "latest"
cursor pointer. Everything underneath is a plain ObjectStore.

Layout:
    YYYY/MM/DD/<id>.jpg    original photo (or placeholder)
    YYYY/MM/DD/<id>.webp   transcoded copy
    latest                 zero-byte pointer; metadata id, created_at, key

Example:
    >>> store = CheckinStore(InMemoryObjectStore())
    >>> store.put_original(jpeg_bytes, record)
    >>> store.set_cursor(record.checkin_id, record.created_at)
    True
    >>> store.get_cursor()
    1234567
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from untappd_mirror.models.checkins import ORIGINAL_EXTENSION, TRANSCODED_EXTENSION, storage_key
from untappd_mirror.storage.protocol import ObjectNotFoundError, ObjectStore, StorageError
from untappd_mirror.utils.logging import get_logger
from untappd_mirror.utils.time import format_timestamp, parse_checkin_timestamp

if TYPE_CHECKING:
    from untappd_mirror.models.checkins import CheckinRecord

logger = get_logger(__name__)

LATEST_KEY = "latest"
CURSOR_ID_FIELD = "id"

CONTENT_TYPES = {
    ORIGINAL_EXTENSION: "image/jpeg",
    TRANSCODED_EXTENSION: "image/webp",
}


class CheckinStore:
    """Adapter between check-in records and an ObjectStore.

    Attributes:
        objects: Underlying object store
    """

    def __init__(self, objects: ObjectStore):
        self.objects = objects

    def original_key(self, checkin_id: int, created_at: str | datetime) -> str:
        return storage_key(checkin_id, created_at, ORIGINAL_EXTENSION)

    def put_original(self, data: bytes, record: CheckinRecord) -> str:
        """Upload the canonical photo. Returns the key written."""
        return self._put(data, record, ORIGINAL_EXTENSION)

    def put_transcoded(
        self,
        data: bytes,
        record: CheckinRecord,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Upload the transcoded photo. Returns the key written.

        ``metadata`` replaces the attributes derived from the record.
        """
        return self._put(data, record, TRANSCODED_EXTENSION, metadata)

    def _put(
        self,
        data: bytes,
        record: CheckinRecord,
        extension: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        key = record.storage_key(extension)
        self.objects.put_object(
            key,
            data,
            record.to_metadata() if metadata is None else metadata,
            CONTENT_TYPES[extension],
        )
        logger.debug("checkin_uploaded", checkin_id=record.checkin_id, key=key, size=len(data))
        return key

    def get_original(self, record: CheckinRecord) -> bytes:
        """Download the canonical photo of a stored check-in."""
        return self.objects.get_object(record.storage_key(ORIGINAL_EXTENSION))

    def get_original_metadata(self, record: CheckinRecord) -> dict[str, str]:
        """Attributes stored on the canonical photo of a check-in."""
        return self.objects.head_object(record.storage_key(ORIGINAL_EXTENSION))

    def get_cursor(self) -> int | None:
        """Read the persisted cursor.

        Returns:
            Identifier of the most recently mirrored check-in, or None when
            nothing has been mirrored yet

        Raises:
            StorageError: If the pointer exists but is unreadable
        """
        try:
            metadata = self.objects.head_object(LATEST_KEY)
        except ObjectNotFoundError:
            logger.info("cursor_missing", key=LATEST_KEY)
            return None

        raw = (metadata.get(CURSOR_ID_FIELD) or "").strip()
        if not raw:
            raise StorageError(f"missing '{CURSOR_ID_FIELD}' metadata on {LATEST_KEY!r}")
        try:
            cursor = int(raw)
        except ValueError as e:
            raise StorageError(
                f"invalid '{CURSOR_ID_FIELD}' metadata value {raw!r} on {LATEST_KEY!r}"
            ) from e

        logger.debug("cursor_loaded", cursor=cursor)
        return cursor

    def set_cursor(self, checkin_id: int, created_at: str | datetime) -> bool:
        """Point "latest" at a check-in.

        Never moves the cursor backwards, and writing the current value
        again does nothing.

        Returns:
            True if the pointer was written

        Raises:
            StorageError: If reading or writing the pointer fails
        """
        current = self.get_cursor()
        if current is not None and checkin_id <= current:
            if checkin_id < current:
                logger.warning("cursor_not_advanced", current=current, requested=checkin_id)
            return False

        timestamp = parse_checkin_timestamp(created_at)
        self.objects.put_object(
            LATEST_KEY,
            b"",
            {
                CURSOR_ID_FIELD: str(checkin_id),
                "created_at": format_timestamp(timestamp),
                "key": self.original_key(checkin_id, timestamp),
            },
            "application/octet-stream",
        )
        logger.info("cursor_advanced", previous=current, cursor=checkin_id)
        return True
