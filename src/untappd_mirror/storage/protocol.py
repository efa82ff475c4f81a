"""
Object storage protocol for the Untappd mirror.

The mirror needs very little from its backend: a flat key space of
byte blobs, each carrying a string metadata map, plus head, get and
put. There are no transactions; the "latest" cursor is
an ordinary object whose metadata is replaced on every update.

Implemented by:
- S3ObjectStore: AWS S3 or Cloudflare R2 through boto3
- InMemoryObjectStore: Process-local store for tests and dry runs
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class StorageError(RuntimeError):
    """A storage operation failed for a reason other than absence."""


class ObjectNotFoundError(StorageError):
    """The requested key does not exist."""

    def __init__(self, key: str):
        super().__init__(f"object not found: {key}")
        self.key = key


@runtime_checkable
class ObjectStore(Protocol):
    """Interface for key/value object storage backends.

    Implementations must be safe to call from several worker threads.
    """

    @property
    def bucket_name(self) -> str:
        """Bucket (or namespace) the store writes to."""
        ...

    def head_object(self, key: str) -> dict[str, str]:
        """Return the metadata of an object.

        Raises:
            ObjectNotFoundError: If the key does not exist
            StorageError: On any other failure (permissions, network)
        """
        ...

    def get_object(self, key: str) -> bytes:
        """Return the body of an object.

        Raises:
            ObjectNotFoundError: If the key does not exist
            StorageError: On any other failure
        """
        ...

    def put_object(
        self,
        key: str,
        body: bytes,
        metadata: dict[str, str],
        content_type: str,
    ) -> None:
        """Create or overwrite an object.

        Raises:
            StorageError: If the write fails
        """
        ...
