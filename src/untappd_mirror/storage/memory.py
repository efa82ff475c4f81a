"""
In-memory object store.

Thread-safe dict-backed ObjectStore used by the test suite and by
``--dry-run`` invocations that should touch nothing remote.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from untappd_mirror.storage.protocol import ObjectNotFoundError


@dataclass(frozen=True)
class StoredObject:
    """A stored blob with its metadata."""

    body: bytes
    metadata: dict[str, str] = field(default_factory=dict)
    content_type: str = "application/octet-stream"


class InMemoryObjectStore:
    """ObjectStore kept in a process-local dictionary."""

    def __init__(self, bucket_name: str = "memory"):
        self._bucket = bucket_name
        self._objects: dict[str, StoredObject] = {}
        self._lock = threading.Lock()
        self.put_count = 0

    @property
    def bucket_name(self) -> str:
        return self._bucket

    def head_object(self, key: str) -> dict[str, str]:
        return dict(self._get(key).metadata)

    def get_object(self, key: str) -> bytes:
        return self._get(key).body

    def put_object(
        self,
        key: str,
        body: bytes,
        metadata: dict[str, str],
        content_type: str,
    ) -> None:
        with self._lock:
            self._objects[key] = StoredObject(bytes(body), dict(metadata), content_type)
            self.put_count += 1

    def _get(self, key: str) -> StoredObject:
        with self._lock:
            obj = self._objects.get(key)
        if obj is None:
            raise ObjectNotFoundError(key)
        return obj

    def keys(self) -> list[str]:
        """All stored keys, sorted."""
        with self._lock:
            return sorted(self._objects)

    def get(self, key: str) -> StoredObject | None:
        """Stored object or None, without raising."""
        with self._lock:
            return self._objects.get(key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._objects

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)

    def __repr__(self) -> str:
        return f"InMemoryObjectStore(objects={len(self)})"
