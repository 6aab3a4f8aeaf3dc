"""Canonical business profile records produced by the place normalizer."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

MAX_PHOTOS = 25
MAX_REVIEWS = 10
RECENT_WINDOW_SECONDS = 30 * 24 * 3600


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""
    lat: float
    lng: float


@dataclass(frozen=True)
class Photo:
    width: int = 0
    height: int = 0
    preview_url: str = ""


@dataclass(frozen=True)
class Review:
    rating: Optional[float] = None
    timestamp: Optional[int] = None  # seconds since epoch
    text: str = ""
    author_name: str = ""
    relative_time_description: str = ""


@dataclass(frozen=True)
class OpeningHours:
    weekday_text: tuple[str, ...] = ()
    open_now: Optional[bool] = None


@dataclass(frozen=True)
class PlacePrediction:
    """One autocomplete suggestion."""
    description: str
    place_id: str


@dataclass(frozen=True)
class PlaceProfile:
    """Canonical business record.

    ``photos`` and ``reviews`` are capped at ingestion (25 and 10) so every
    downstream computation works on a bounded list.
    """

    place_id: str = ""
    name: str = ""
    formatted_address: str = ""
    business_status: str = ""
    types: tuple[str, ...] = ()
    rating: Optional[float] = None
    review_count: Optional[int] = None
    phone: str = ""
    website: str = ""
    opening_hours: Optional[OpeningHours] = None
    description: str = ""
    photos: tuple[Photo, ...] = ()
    reviews: tuple[Review, ...] = ()
    location: Optional[GeoPoint] = None

    @property
    def photo_count(self) -> int:
        return len(self.photos)

    @property
    def has_hours(self) -> bool:
        return bool(self.opening_hours and self.opening_hours.weekday_text)

    def recent_review_count(self, now: Optional[float] = None) -> int:
        """Count reviews posted in the 30 days before *now* (epoch seconds)."""
        now = time.time() if now is None else now
        cutoff = now - RECENT_WINDOW_SECONDS
        return sum(1 for r in self.reviews if (r.timestamp or 0) > cutoff)

    def has_recent_review(self, now: Optional[float] = None) -> bool:
        return self.recent_review_count(now) > 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CompetitorProfile:
    """Lighter-weight view of a competitor's :class:`PlaceProfile`."""

    place_id: str
    name: str = ""
    rating: Optional[float] = None
    review_count: Optional[int] = None
    photo_count: int = 0
    has_website: bool = False
    has_phone: bool = False
    has_hours: bool = False
    formatted_address: str = ""
    distance_miles: Optional[float] = None
    source: Optional[PlaceProfile] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_place(
        cls,
        place: PlaceProfile,
        distance_miles: Optional[float] = None,
    ) -> "CompetitorProfile":
        return cls(
            place_id=place.place_id,
            name=place.name,
            rating=place.rating,
            review_count=place.review_count,
            photo_count=place.photo_count,
            has_website=bool(place.website),
            has_phone=bool(place.phone),
            has_hours=place.has_hours,
            formatted_address=place.formatted_address,
            distance_miles=distance_miles,
            source=place,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("source", None)
        return data
