"""Shared pytest fixtures for Local Presence Audit tests."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pytest

# Ensure project root is on sys.path so 'presence_audit' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from presence_audit.errors import ProviderUnavailable  # noqa: E402
from presence_audit.integrations.places_provider import PlaceDataProvider  # noqa: E402
from presence_audit.models.profile import PlacePrediction  # noqa: E402

FIXED_NOW = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)
DAY = 24 * 3600


def make_raw_place(
    place_id: str,
    name: str = "",
    rating: Optional[float] = 4.5,
    total: Optional[int] = 40,
    photos: int = 12,
    lat: Optional[float] = 39.7392,
    lng: Optional[float] = -104.9903,
    types: Optional[list[str]] = None,
    phone: Optional[str] = "(303) 555-0142",
    website: Optional[str] = "https://example.com",
    hours: int = 7,
    description: Optional[str] = None,
    address: str = "1234 Market Street, Denver, CO 80202, USA",
    review_ages_days: tuple[float, ...] = (3, 45),
    now: datetime = FIXED_NOW,
) -> dict[str, Any]:
    """Build a Places-shaped details record."""
    raw: dict[str, Any] = {
        "place_id": place_id,
        "name": name or f"Business {place_id}",
        "formatted_address": address,
        "business_status": "OPERATIONAL",
        "types": types if types is not None else ["plumber", "point_of_interest", "establishment"],
        "rating": rating,
        "user_ratings_total": total,
        "photos": [
            {"width": 800, "height": 600, "photo_reference": f"ref-{place_id}-{i}"}
            for i in range(photos)
        ],
        "reviews": [
            {
                "rating": 5,
                "time": int(now.timestamp() - age * DAY),
                "text": "Great service",
                "author_name": "A. Customer",
            }
            for age in review_ages_days
        ],
    }
    if lat is not None and lng is not None:
        raw["geometry"] = {"location": {"lat": lat, "lng": lng}}
    if phone:
        raw["formatted_phone_number"] = phone
    if website:
        raw["website"] = website
    if hours:
        days = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
        raw["opening_hours"] = {
            "weekday_text": [f"{d}: 8:00 AM - 6:00 PM" for d in days[:hours]],
            "open_now": True,
        }
    if description is not None:
        raw["editorial_summary"] = {"overview": description}
    return raw


class FakePlaceProvider(PlaceDataProvider):
    """In-memory provider with scripted records and failures."""

    def __init__(
        self,
        places: Optional[dict[str, dict[str, Any]]] = None,
        predictions: Optional[list[PlacePrediction]] = None,
        nearby: Optional[list[dict[str, Any]]] = None,
        failing: Optional[set[str]] = None,
    ):
        self.places = places or {}
        self.predictions = predictions or []
        self.nearby = nearby or []
        self.failing = failing or set()
        self.calls: list[tuple[str, Any]] = []

    async def predict(self, query: str) -> list[PlacePrediction]:
        self.calls.append(("predict", query))
        return list(self.predictions)

    async def details(self, place_id: str, fields) -> dict[str, Any]:
        self.calls.append(("details", place_id))
        if place_id in self.failing:
            raise ProviderUnavailable(f"details failed for {place_id}")
        return dict(self.places[place_id])

    async def nearby_search(self, location, radius_meters, category_hint=None, keyword=None):
        self.calls.append(("nearby", {
            "radius": radius_meters,
            "type": category_hint,
            "keyword": keyword,
        }))
        return list(self.nearby)


@pytest.fixture(autouse=True)
def _reset_db_engine():
    """Autouse fixture: reset the global DB engine before and after every test."""
    from presence_audit.database import reset_engine
    reset_engine()
    yield
    reset_engine()


@pytest.fixture()
def test_db():
    """Provide an in-memory SQLite database with all tables created."""
    from presence_audit.database import init_db, reset_engine
    reset_engine()
    db_url = "sqlite:///:memory:"
    init_db(database_url=db_url, echo=False)
    yield db_url


@pytest.fixture()
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def governor(fixed_clock):
    """In-memory quota governor pinned to a fixed day."""
    from presence_audit.modules.local_presence.quota import InMemoryQuotaStore, QuotaGovernor
    return QuotaGovernor(InMemoryQuotaStore(), caller_key="test", clock=fixed_clock)


@pytest.fixture()
def raw_place():
    """Factory fixture for Places-shaped records."""
    return make_raw_place


@pytest.fixture()
def market():
    """A subject plus five competitors around downtown Denver."""
    subject = make_raw_place(
        "ChSubject", name="Acme Plumbing", rating=4.2, total=30, photos=8,
        description="Family plumbing company.",
    )
    competitors = [
        make_raw_place("ChComp1", name="Rapid Rooter", rating=4.8, total=210, photos=25,
                       lat=39.7400, lng=-104.9800),
        make_raw_place("ChComp2", name="Mile High Pipes", rating=4.6, total=120, photos=20,
                       lat=39.7500, lng=-104.9950),
        make_raw_place("ChComp3", name="Front Range Drains", rating=4.1, total=15, photos=4,
                       lat=39.7300, lng=-105.0000),
        make_raw_place("ChComp4", name="Cherry Creek Plumbing", rating=4.9, total=80, photos=18,
                       lat=39.7200, lng=-104.9500),
        make_raw_place("ChComp5", name="Union Station Heating", rating=3.9, total=60, photos=10,
                       lat=39.7530, lng=-105.0000),
    ]
    places = {subject["place_id"]: subject, **{c["place_id"]: c for c in competitors}}
    nearby = [
        {"place_id": "ChSubject", "rating": 4.2, "user_ratings_total": 30},
        *[
            {
                "place_id": c["place_id"],
                "rating": c["rating"],
                "user_ratings_total": c["user_ratings_total"],
            }
            for c in competitors
        ],
    ]
    return {"subject": subject, "competitors": competitors, "places": places, "nearby": nearby}


@pytest.fixture()
def fake_provider(market):
    return FakePlaceProvider(
        places=market["places"],
        predictions=[PlacePrediction("Acme Plumbing, Denver, CO", "ChSubject")],
        nearby=market["nearby"],
    )
