"""
Check-in data models for the Untappd mirror.

This module defines Pydantic models for:
- CheckinRecord: One activity event from the feed or an export file
- Beer, Brewery, Venue, Location: Nested descriptive attributes

Records are immutable once built; the pipeline hands the same instance
to worker threads without copying.

Example:
    >>> from untappd_mirror.models import CheckinRecord
    >>>
    >>> record = CheckinRecord.from_api(api_item)
    >>> record.storage_key("jpg")
    '2025/11/01/1234567.jpg'
    >>> record.to_metadata()["venue"]
    'The Local'
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from untappd_mirror.utils.time import date_partition, format_timestamp, parse_checkin_timestamp

# Venue the service attaches to check-ins made without a real location
SENTINEL_VENUE = "Untappd at Home"

ORIGINAL_EXTENSION = "jpg"
TRANSCODED_EXTENSION = "webp"


def storage_key(checkin_id: int, created_at: str | datetime, extension: str) -> str:
    """Derive the date-partitioned object key for a check-in artifact.

    Args:
        checkin_id: Check-in identifier
        created_at: Check-in timestamp (any supported format)
        extension: File extension without the dot ("jpg", "webp")

    Returns:
        Key of the form YYYY/MM/DD/<id>.<ext>

    Raises:
        ValueError: If the timestamp cannot be parsed
    """
    partition = date_partition(parse_checkin_timestamp(created_at))
    return f"{partition}/{checkin_id}.{extension}"


def format_latlng(lat: float, lng: float) -> str:
    """Format coordinates as "lat,lng"; zero on either axis means unknown."""
    if lat == 0 or lng == 0:
        return ""
    return f"{lat:f},{lng:f}"


class Location(BaseModel):
    """Venue location."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    lat: float = 0.0
    lng: float = 0.0
    city: str = ""
    state: str = ""
    country: str = ""


class Venue(BaseModel):
    """Where a check-in happened."""

    model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)

    name: str = ""
    location: Location = Field(default_factory=Location)

    @property
    def is_sentinel(self) -> bool:
        """True for the placeholder venue that carries no real location."""
        return self.name == SENTINEL_VENUE


class Beer(BaseModel):
    """Beverage attributes."""

    model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)

    name: str = ""
    style: str = ""
    abv: float = 0.0


class Brewery(BaseModel):
    """Producer attributes."""

    model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)

    name: str = ""
    country: str = ""


class CheckinRecord(BaseModel):
    """A single check-in, validated and normalized.

    Attributes:
        checkin_id: Stable identifier, increases with feed recency
        created_at: Check-in time, always timezone-aware UTC
        comment: Free-text comment
        rating: Rating score (0-5)
        beer: Beverage attributes
        brewery: Producer attributes
        venue: Venue, or None when the check-in has no venue
        photo_url: Original photo URL, or None
        serving_type: Serving style (export files only)
    """

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        str_strip_whitespace=True,
    )

    checkin_id: int = Field(..., gt=0, description="Check-in identifier")
    created_at: datetime = Field(..., description="Check-in timestamp (UTC)")
    comment: str = Field(default="", description="Check-in comment")
    rating: float = Field(default=0.0, ge=0, description="Rating score")
    beer: Beer = Field(default_factory=Beer)
    brewery: Brewery = Field(default_factory=Brewery)
    venue: Venue | None = Field(default=None)
    photo_url: str | None = Field(default=None, description="Photo URL")
    serving_type: str = Field(default="", description="Serving style")

    @field_validator("created_at", mode="before")
    @classmethod
    def normalize_created_at(cls, v: Any) -> datetime:
        """Accept every timestamp form the feed and export produce."""
        if not isinstance(v, (str, datetime)):
            raise ValueError(f"unsupported timestamp type {type(v).__name__}")
        return parse_checkin_timestamp(v)

    @field_validator("photo_url", mode="before")
    @classmethod
    def blank_photo_is_none(cls, v: Any) -> str | None:
        """Treat empty strings as "no photo"."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> CheckinRecord:
        """Create a record from a feed API check-in object.

        Handles the service's habit of sending ``[]`` instead of ``{}``
        for empty nested objects.

        Args:
            item: One element of ``response.checkins.items``

        Returns:
            CheckinRecord
        """
        beer = _as_dict(item.get("beer"))
        brewery = _as_dict(item.get("brewery"))
        venue_data = _as_dict(item.get("venue"))

        venue = None
        if venue_data:
            location = _as_dict(venue_data.get("location"))
            venue = Venue(
                name=venue_data.get("venue_name") or "",
                location=Location(
                    lat=location.get("lat") or 0.0,
                    lng=location.get("lng") or 0.0,
                    city=location.get("venue_city") or "",
                    state=location.get("venue_state") or "",
                    country=location.get("venue_country") or "",
                ),
            )

        photo_url = None
        media_items = _as_dict(item.get("media")).get("items") or []
        if media_items:
            photo = _as_dict(_as_dict(media_items[0]).get("photo"))
            photo_url = photo.get("photo_img_og")

        return cls(
            checkin_id=item.get("checkin_id"),
            created_at=item.get("created_at"),
            comment=item.get("checkin_comment") or "",
            rating=item.get("rating_score") or 0.0,
            beer=Beer(
                name=beer.get("beer_name") or "",
                style=beer.get("beer_style") or "",
                abv=beer.get("beer_abv") or 0.0,
            ),
            brewery=Brewery(
                name=brewery.get("brewery_name") or "",
                country=brewery.get("country_name") or "",
            ),
            venue=venue,
            photo_url=photo_url,
        )

    @classmethod
    def from_export_row(cls, row: dict[str, Any]) -> CheckinRecord:
        """Create a record from one row of the check-in export file.

        Numeric columns are lenient (blank or garbage becomes 0); the
        identifier and timestamp are not.

        Args:
            row: Mapping of export column name to cell text

        Returns:
            CheckinRecord

        Raises:
            ValueError: If checkin_id or created_at is missing or invalid
        """
        raw_id = str(row.get("checkin_id") or "").strip()
        if not raw_id.isdigit():
            raise ValueError(f"invalid checkin_id {raw_id!r}")

        venue = None
        venue_name = str(row.get("venue_name") or "").strip()
        if venue_name:
            venue = Venue(
                name=venue_name,
                location=Location(
                    lat=_to_float(row.get("venue_lat")),
                    lng=_to_float(row.get("venue_lng")),
                    city=row.get("venue_city") or "",
                    state=row.get("venue_state") or "",
                    country=row.get("venue_country") or "",
                ),
            )

        return cls(
            checkin_id=int(raw_id),
            created_at=str(row.get("created_at") or ""),
            comment=row.get("comment") or "",
            rating=_to_float(row.get("rating_score")),
            beer=Beer(
                name=row.get("beer_name") or "",
                style=row.get("beer_type") or "",
                abv=_to_float(row.get("beer_abv")),
            ),
            brewery=Brewery(
                name=row.get("brewery_name") or "",
                country=row.get("brewery_country") or "",
            ),
            venue=venue,
            photo_url=row.get("photo_url"),
            serving_type=row.get("serving_type") or "",
        )

    def storage_key(self, extension: str = ORIGINAL_EXTENSION) -> str:
        """Object key for this record's artifact with the given extension."""
        return storage_key(self.checkin_id, self.created_at, extension)

    def to_metadata(self) -> dict[str, str]:
        """Build the string attribute map attached to stored objects.

        Location fields are blanked for the sentinel venue and when
        there is no venue at all.

        Returns:
            Flat str -> str mapping
        """
        venue = self.venue
        venue_name = venue.name if venue else ""
        city = state = country = latlng = ""
        if venue is not None and not venue.is_sentinel:
            city = venue.location.city
            state = venue.location.state
            country = venue.location.country
            latlng = format_latlng(venue.location.lat, venue.location.lng)

        return {
            "id": str(self.checkin_id),
            "beer": self.beer.name,
            "brewery": self.brewery.name,
            "brewery_country": self.brewery.country,
            "comment": self.comment,
            "rating": f"{self.rating:.2f}",
            "venue": venue_name,
            "city": city,
            "state": state,
            "country": country,
            "latlng": latlng,
            "date": format_timestamp(self.created_at),
            "style": self.beer.style,
            "abv": f"{self.beer.abv:.2f}",
            "serving_type": self.serving_type,
        }


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _to_float(value: Any) -> float:
    try:
        return float(value) if value not in (None, "") else 0.0
    except (TypeError, ValueError):
        return 0.0
