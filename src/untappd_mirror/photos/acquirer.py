"""
Photo acquisition for check-ins.

Every mirrored check-in gets an image: the photo attached on Untappd
when there is one, otherwise a fixed local placeholder.

Example:
    >>> from untappd_mirror.photos import PhotoAcquirer
    >>>
    >>> with PhotoAcquirer("assets/placeholder.jpg") as acquirer:
    ...     data = acquirer.acquire(record.photo_url)
"""

from __future__ import annotations

from pathlib import Path

import httpx

from untappd_mirror.utils.cancel import CancellationToken
from untappd_mirror.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_USER_AGENT = "untappd-mirror/1.0"
CHUNK_SIZE = 64 * 1024


class PhotoError(RuntimeError):
    """A photo could not be obtained. Fatal for one check-in only."""


class PhotoAcquirer:
    """Downloads check-in photos with a size cap and a timeout.

    One instance (and its connection pool) is shared by all workers.

    Attributes:
        placeholder_path: Image used when a check-in has no photo
        timeout_seconds: Per-download timeout
        max_bytes: Largest accepted photo
    """

    def __init__(
        self,
        placeholder_path: str | Path,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_bytes: int = DEFAULT_MAX_BYTES,
        user_agent: str = DEFAULT_USER_AGENT,
        client: httpx.Client | None = None,
    ):
        self.placeholder_path = Path(placeholder_path)
        self.timeout_seconds = timeout_seconds
        self.max_bytes = max_bytes
        self.user_agent = user_agent

        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds, follow_redirects=True)
        self._placeholder: bytes | None = None

    def __enter__(self) -> PhotoAcquirer:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def acquire(self, url: str | None, cancel: CancellationToken | None = None) -> bytes:
        """Get the image bytes for a check-in.

        Args:
            url: Photo URL, None or empty for the placeholder
            cancel: Token checked before the request and between chunks

        Returns:
            Raw image bytes

        Raises:
            PhotoError: Unreadable placeholder, failed or oversized download
            RunCancelledError: If the run was cancelled mid-download
        """
        if not url:
            return self.placeholder()

        if cancel is not None:
            cancel.raise_if_cancelled()

        try:
            with self._client.stream("GET", url, headers={"User-Agent": self.user_agent}) as response:
                if response.status_code != httpx.codes.OK:
                    raise PhotoError(f"photo download failed with status {response.status_code}")

                declared = response.headers.get("Content-Length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise PhotoError(f"photo too large: {declared} bytes (max {self.max_bytes})")

                buffer = bytearray()
                for chunk in response.iter_bytes(CHUNK_SIZE):
                    if cancel is not None:
                        cancel.raise_if_cancelled()
                    buffer.extend(chunk)
                    if len(buffer) > self.max_bytes:
                        raise PhotoError(f"photo exceeds {self.max_bytes} bytes")
        except httpx.TimeoutException as e:
            raise PhotoError(f"photo download timed out: {url}") from e
        except httpx.HTTPError as e:
            raise PhotoError(f"photo download failed: {e}") from e

        logger.debug("photo_downloaded", url=url, size=len(buffer))
        return bytes(buffer)

    def placeholder(self) -> bytes:
        """Bytes of the placeholder image, read once and cached.

        Raises:
            PhotoError: If the placeholder file cannot be read
        """
        if self._placeholder is None:
            try:
                self._placeholder = self.placeholder_path.read_bytes()
            except OSError as e:
                raise PhotoError(f"cannot read placeholder {self.placeholder_path}: {e}") from e
        return self._placeholder

    def close(self) -> None:
        """Close the HTTP client if this acquirer created it."""
        if self._owns_client:
            self._client.close()

    def __repr__(self) -> str:
        return f"PhotoAcquirer(placeholder={str(self.placeholder_path)!r}, max_bytes={self.max_bytes})"
