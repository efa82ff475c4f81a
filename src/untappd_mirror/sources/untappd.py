"""
Untappd feed source for the Untappd mirror.

Pulls the authenticated user's check-ins one page at a time. The feed
is most-recent-first; pagination follows the ``since_url`` the API
returns, whose ``min_id`` query parameter becomes the next cursor.

Example:
    >>> from untappd_mirror.sources import UntappdSource
    >>>
    >>> source = UntappdSource(access_token="...")
    >>> source.connect()
    >>> page = source.fetch_page(None)  # most recent check-in only
    >>> page = source.fetch_page(None, since_id=1234567)  # everything after it
    >>> source.close()
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs, urlparse

import httpx
from pydantic import ValidationError

from untappd_mirror.models.checkins import CheckinRecord
from untappd_mirror.sources.protocol import CheckinPage, FeedError, StopReason
from untappd_mirror.utils.cancel import CancellationToken
from untappd_mirror.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.untappd.com/v4"
RATE_LIMIT_HEADER = "X-Ratelimit-Remaining"


def parse_min_id(since_url: str) -> int:
    """Extract the ``min_id`` cursor from a pagination URL.

    Raises:
        FeedError: If the parameter is missing or not an integer
    """
    values = parse_qs(urlparse(since_url).query).get("min_id")
    if not values or not values[0]:
        raise FeedError(f"min_id not found in since_url {since_url!r}")
    try:
        return int(values[0])
    except ValueError as e:
        raise FeedError(f"invalid min_id {values[0]!r} in since_url") from e


def extract_items(payload: Any) -> list[dict[str, Any]]:
    """Pull the check-in list out of a decoded feed response.

    Two response shapes exist; they are tried in order:

    1. ``{"response": {"checkins": {"items": [...]}}}`` (user feed)
    2. ``{"response": {"items": [...]}}``

    Raises:
        FeedError: If neither shape matches
    """
    response = payload.get("response") if isinstance(payload, dict) else None
    if not isinstance(response, dict):
        raise FeedError("feed response has no 'response' object")

    checkins = response.get("checkins")
    if isinstance(checkins, dict) and isinstance(checkins.get("items"), list):
        return checkins["items"]

    items = response.get("items")
    if isinstance(items, list):
        return items

    raise FeedError("feed response contains neither checkins.items nor items")


class UntappdSource:
    """Paginated source backed by the Untappd v4 API.

    Attributes:
        source_name: Always "untappd"
        access_token: OAuth access token
        api_url: API base URL
        timeout_seconds: Per-request timeout
    """

    source_name = "untappd"

    def __init__(
        self,
        access_token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = 10.0,
        cancel: CancellationToken | None = None,
        client: httpx.Client | None = None,
    ):
        """Initialize the source.

        Args:
            access_token: OAuth access token
            api_url: API base URL
            timeout_seconds: Per-request timeout
            cancel: Cancellation token checked before each request
            client: Pre-built httpx client (tests inject a MockTransport)
        """
        self.access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.cancel = cancel or CancellationToken()

        self._client = client
        self._owns_client = client is None

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/user/checkins"

    def connect(self) -> None:
        """Create the HTTP client."""
        if not self.access_token:
            raise ValueError("Untappd access token is not configured")
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout_seconds)
            self._owns_client = True

    def build_params(self, cursor: int | None, since_id: int | None = None) -> dict[str, str]:
        """Query parameters for a page request.

        The first page starts at ``since_id``; later pages follow the
        ``min_id`` of the previous page's ``since_url``. Without either
        only the single most recent check-in is asked for, so a first run
        seeds the cursor instead of walking the whole history.
        """
        params = {"access_token": self.access_token}
        min_id = cursor if cursor is not None else since_id
        if min_id:
            params["min_id"] = str(min_id)
        else:
            params["limit"] = "1"
        return params

    def fetch_page(self, cursor: int | None, since_id: int | None = None) -> CheckinPage:
        """Fetch one page of the feed.

        Raises:
            FeedError: On transport errors, non-200 responses, undecodable
                bodies, invalid items, or an unparseable pagination cursor
            RunCancelledError: If cancelled before the request
        """
        if self._client is None:
            raise RuntimeError("Source not connected. Call connect() first.")

        self.cancel.raise_if_cancelled()

        try:
            response = self._client.get(self.endpoint, params=self.build_params(cursor, since_id))
        except httpx.HTTPError as e:
            raise FeedError(f"feed request failed: {e}") from e

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> CheckinPage:
        if response.status_code != httpx.codes.OK:
            raise FeedError(f"feed request failed with status {response.status_code}")

        if response.headers.get(RATE_LIMIT_HEADER) == "0":
            logger.warning("rate_limit_reached", remaining=0)
            return CheckinPage(stop=StopReason.RATE_LIMITED)

        try:
            payload = response.json()
        except ValueError as e:
            raise FeedError(f"failed to decode feed response: {e}") from e

        raw_items = extract_items(payload)
        if not raw_items:
            return CheckinPage(stop=StopReason.EMPTY)

        try:
            items = tuple(CheckinRecord.from_api(item) for item in raw_items)
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            raise FeedError(f"failed to decode check-in: {e}") from e

        pagination = payload["response"].get("pagination") or {}
        since_url = pagination.get("since_url") if isinstance(pagination, dict) else None

        logger.debug(
            "page_fetched",
            items=len(items),
            first_id=items[0].checkin_id,
            remaining=response.headers.get(RATE_LIMIT_HEADER),
        )

        if not since_url:
            return CheckinPage(items=items, stop=StopReason.EXHAUSTED)

        return CheckinPage(items=items, next_cursor=parse_min_id(since_url))

    def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def __repr__(self) -> str:
        return f"UntappdSource(api_url={self.api_url!r})"
