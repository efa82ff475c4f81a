"""
Test factories for generating check-in data.

This module provides factory classes for creating test data
with sensible defaults and optional overrides.

Example:
    >>> from tests.fixtures import CheckinFactory
    >>>
    >>> # Create a single record
    >>> record = CheckinFactory.create(rating=4.5)
    >>>
    >>> # Create a feed page, most recent first
    >>> records = CheckinFactory.create_batch(3)
    >>>
    >>> # Raw shapes as the API and the export file deliver them
    >>> item = CheckinFactory.api_item(checkin_id=42)
    >>> row = CheckinFactory.export_row(checkin_id=42)
"""

from __future__ import annotations

import io
from datetime import UTC, datetime, timedelta
from typing import Any

from PIL import Image

from untappd_mirror.models import SENTINEL_VENUE, Beer, Brewery, CheckinRecord, Location, Venue

BASE_TIME = datetime(2025, 11, 1, 18, 30, tzinfo=UTC)
PHOTO_URL = "https://images.example.com/photo.jpg"


def make_image_bytes(
    size: tuple[int, int] = (8, 8),
    color: tuple[int, int, int] = (200, 120, 40),
    format: str = "JPEG",
) -> bytes:
    """Encode a solid-color image with Pillow."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=format)
    return buffer.getvalue()


class CheckinFactory:
    """Factory for creating test CheckinRecord instances.

    Identifiers increase with every call, so later records are "more
    recent", matching the feed's ordering rules.

    Attributes:
        _counter: Internal counter for unique IDs
    """

    _counter: int = 0

    @classmethod
    def reset(cls) -> None:
        """Reset the counter to 0."""
        cls._counter = 0

    @classmethod
    def create(cls, **overrides) -> CheckinRecord:
        """Create a single record with optional field overrides.

        Args:
            **overrides: Field values to override defaults

        Returns:
            CheckinRecord instance
        """
        cls._counter += 1

        defaults: dict[str, Any] = {
            "checkin_id": 1000 + cls._counter,
            "created_at": BASE_TIME + timedelta(minutes=cls._counter),
            "comment": "Crisp and clean",
            "rating": 3.75,
            "beer": Beer(name="Pils", style="Pilsner - German", abv=4.8),
            "brewery": Brewery(name="Test Brewing", country="Germany"),
            "venue": Venue(
                name="The Local",
                location=Location(
                    lat=52.52,
                    lng=13.405,
                    city="Berlin",
                    state="Berlin",
                    country="Germany",
                ),
            ),
            "photo_url": None,
        }
        defaults.update(overrides)

        return CheckinRecord(**defaults)

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list[CheckinRecord]:
        """Create several records, most recent first."""
        records = [cls.create(**overrides) for _ in range(count)]
        return sorted(records, key=lambda r: r.checkin_id, reverse=True)

    @classmethod
    def create_at_home(cls, **overrides) -> CheckinRecord:
        """Create a record at the no-location sentinel venue."""
        defaults = {
            "venue": Venue(
                name=SENTINEL_VENUE,
                location=Location(lat=34.05, lng=-118.24, city="Los Angeles", country="USA"),
            ),
        }
        defaults.update(overrides)
        return cls.create(**defaults)

    @classmethod
    def api_item(cls, checkin_id: int, photo_url: str | None = None, **overrides) -> dict[str, Any]:
        """A check-in object as found in ``response.checkins.items``."""
        item: dict[str, Any] = {
            "checkin_id": checkin_id,
            "created_at": "Sat, 01 Nov 2025 18:30:00 +0000",
            "checkin_comment": "Crisp and clean",
            "rating_score": 3.75,
            "beer": {"beer_name": "Pils", "beer_style": "Pilsner - German", "beer_abv": 4.8},
            "brewery": {"brewery_name": "Test Brewing", "country_name": "Germany"},
            "venue": {
                "venue_name": "The Local",
                "location": {
                    "venue_city": "Berlin",
                    "venue_state": "Berlin",
                    "venue_country": "Germany",
                    "lat": 52.52,
                    "lng": 13.405,
                },
            },
            "media": {"count": 0, "items": []},
        }
        if photo_url:
            item["media"] = {"count": 1, "items": [{"photo": {"photo_img_og": photo_url}}]}
        item.update(overrides)
        return item

    @classmethod
    def export_row(cls, checkin_id: int | str, **overrides) -> dict[str, str]:
        """A row of the CSV export, keyed by column name."""
        row = {
            "beer_name": "Pils",
            "brewery_name": "Test Brewing",
            "beer_type": "Pilsner - German",
            "beer_abv": "4.8",
            "comment": "Crisp and clean",
            "venue_name": "The Local",
            "venue_city": "Berlin",
            "venue_state": "Berlin",
            "venue_country": "Germany",
            "venue_lat": "52.52",
            "venue_lng": "13.405",
            "rating_score": "3.75",
            "created_at": "2025-11-01 18:30:00",
            "checkin_id": str(checkin_id),
            "photo_url": "",
            "brewery_country": "Germany",
            "serving_type": "Draft",
        }
        row.update(overrides)
        return row


def feed_payload(
    items: list[dict[str, Any]],
    since_url: str | None = None,
    *,
    nested: bool = True,
) -> dict[str, Any]:
    """Wrap check-in items in a feed API response body.

    Args:
        items: Check-in objects
        since_url: Next-page URL (None for the last page)
        nested: Use ``response.checkins.items`` instead of ``response.items``
    """
    response: dict[str, Any] = {"pagination": {"since_url": since_url or ""}}
    if nested:
        response["checkins"] = {"count": len(items), "items": items}
    else:
        response["items"] = items
    return {"meta": {"code": 200}, "response": response}
