"""
Presence check for already-mirrored check-ins.
"""

from __future__ import annotations

from datetime import datetime

from untappd_mirror.models.checkins import ORIGINAL_EXTENSION, storage_key
from untappd_mirror.storage.protocol import ObjectNotFoundError, ObjectStore


class DedupOracle:
    """Answers whether a check-in's original photo is already stored.

    A missing key means "not stored". Every other storage failure is
    raised so that a transient error is never mistaken for absence.
    """

    def __init__(self, objects: ObjectStore):
        self.objects = objects

    def exists(self, checkin_id: int, created_at: str | datetime) -> bool:
        """Check for the original artifact of a check-in.

        Raises:
            StorageError: If the lookup fails for any reason but absence
        """
        key = storage_key(checkin_id, created_at, ORIGINAL_EXTENSION)
        try:
            self.objects.head_object(key)
        except ObjectNotFoundError:
            return False
        return True
