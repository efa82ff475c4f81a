"""
Cooperative cancellation for a pipeline run.

One token is created per run and handed to every component that makes
network calls. Components poll it at their suspension points (before a
request, between download chunks) and raise RunCancelledError.

Example:
    >>> token = CancellationToken()
    >>> signal.signal(signal.SIGINT, lambda *_: token.cancel())
    >>> token.raise_if_cancelled()
"""

from __future__ import annotations

import threading


class RunCancelledError(RuntimeError):
    """Raised when a run is cancelled before it could finish."""


class CancellationToken:
    """Thread-safe, one-way cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise RunCancelledError if cancellation was requested."""
        if self._event.is_set():
            raise RunCancelledError("run cancelled")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
