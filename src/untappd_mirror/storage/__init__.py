"""
Storage backends for the Untappd mirror.

- ObjectStore: Protocol for key/value blob storage with metadata
- S3ObjectStore: AWS S3 / Cloudflare R2 via boto3
- InMemoryObjectStore: Process-local store (tests, dry runs)
- CheckinStore: Check-in keys, metadata and the "latest" cursor

Example:
    >>> from untappd_mirror.storage import CheckinStore, create_object_store
    >>>
    >>> store = CheckinStore(create_object_store(settings.storage))
    >>> cursor = store.get_cursor()
"""

from untappd_mirror.storage.checkins import LATEST_KEY, CheckinStore
from untappd_mirror.storage.memory import InMemoryObjectStore
from untappd_mirror.storage.protocol import ObjectNotFoundError, ObjectStore, StorageError
from untappd_mirror.storage.s3 import S3ObjectStore, create_object_store

__all__ = [
    "LATEST_KEY",
    "CheckinStore",
    "InMemoryObjectStore",
    "ObjectNotFoundError",
    "ObjectStore",
    "S3ObjectStore",
    "StorageError",
    "create_object_store",
]
