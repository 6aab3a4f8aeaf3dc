"""Turn loosely-typed provider records into canonical :class:`PlaceProfile` objects.

The normalizer is total: whatever it is given (a Places JSON dict, an SDK
object with attribute access, ``None``), it returns a valid profile with every
missing field defaulted. Nothing in here raises.
"""

import logging
import math
from typing import Any, Optional

from presence_audit.models.profile import (
    MAX_PHOTOS,
    MAX_REVIEWS,
    GeoPoint,
    OpeningHours,
    Photo,
    PlaceProfile,
    Review,
)

logger = logging.getLogger(__name__)

# Fields requested for the audited business and for Pro-tier competitors.
SUBJECT_FIELDS: tuple[str, ...] = (
    "place_id",
    "name",
    "formatted_address",
    "business_status",
    "types",
    "rating",
    "user_ratings_total",
    "photos",
    "opening_hours",
    "formatted_phone_number",
    "website",
    "reviews",
    "geometry",
    "editorial_summary",
)

# Lighter field mask for Standard-tier competitor lookups.
COMPETITOR_FIELDS: tuple[str, ...] = (
    "place_id",
    "name",
    "rating",
    "user_ratings_total",
    "photos",
    "opening_hours",
    "formatted_phone_number",
    "website",
)


def _get(obj: Any, key: str) -> Any:
    """Read *key* from a mapping or an attribute-style object, else ``None``."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    try:
        return getattr(obj, key, None)
    except Exception:  # property getters on foreign SDK objects
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def _int(value: Any, default: Optional[int] = None) -> Optional[int]:
    num = _number(value)
    return int(num) if num is not None else default


def _coordinate(value: Any) -> Optional[float]:
    """Coordinates come as plain numbers (web service) or accessors (SDK LatLng)."""
    if callable(value):
        try:
            value = value()
        except Exception:
            return None
    return _number(value)


def _list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def extract_location(raw: Any) -> Optional[GeoPoint]:
    """Read ``geometry.location`` when both coordinates are usable."""
    loc = _get(_get(raw, "geometry"), "location")
    if loc is None:
        return None
    lat = _coordinate(_get(loc, "lat"))
    lng = _coordinate(_get(loc, "lng"))
    if lat is None or lng is None:
        return None
    return GeoPoint(lat=lat, lng=lng)


def _photo(raw: Any) -> Photo:
    url = _get(raw, "preview_url") or _get(raw, "url") or ""
    get_url = _get(raw, "getUrl")
    if not url and callable(get_url):
        try:
            url = get_url({"maxWidth": 1200, "maxHeight": 1200})
        except Exception:
            url = ""
    return Photo(
        width=_int(_get(raw, "width"), 0),
        height=_int(_get(raw, "height"), 0),
        preview_url=_text(url),
    )


def _review(raw: Any) -> Review:
    return Review(
        rating=_number(_get(raw, "rating")),
        timestamp=_int(_get(raw, "time")),
        text=_text(_get(raw, "text")),
        author_name=_text(_get(raw, "author_name")),
        relative_time_description=_text(_get(raw, "relative_time_description")),
    )


def _opening_hours(raw: Any) -> Optional[OpeningHours]:
    hours = _get(raw, "opening_hours")
    if hours is None:
        return None
    open_now = _get(hours, "open_now")
    return OpeningHours(
        weekday_text=tuple(_text(line) for line in _list(_get(hours, "weekday_text"))),
        open_now=open_now if isinstance(open_now, bool) else None,
    )


def _description(raw: Any) -> str:
    summary = _get(raw, "editorial_summary")
    if isinstance(summary, str):
        return summary
    return _text(_get(summary, "overview"))


def normalize_place(raw: Any) -> PlaceProfile:
    """Map a raw provider record onto a :class:`PlaceProfile`.

    Photos are truncated to 25 and reviews to 10, keeping provider order.
    Opening-hours weekday text is preserved verbatim.
    """
    types = tuple(_text(t) for t in _list(_get(raw, "types")) if t)
    return PlaceProfile(
        place_id=_text(_get(raw, "place_id")),
        name=_text(_get(raw, "name")),
        formatted_address=_text(_get(raw, "formatted_address")),
        business_status=_text(_get(raw, "business_status")),
        types=types,
        rating=_number(_get(raw, "rating")),
        review_count=_int(_get(raw, "user_ratings_total")),
        phone=_text(_get(raw, "formatted_phone_number")),
        website=_text(_get(raw, "website")),
        opening_hours=_opening_hours(raw),
        description=_description(raw),
        photos=tuple(_photo(p) for p in _list(_get(raw, "photos"))[:MAX_PHOTOS]),
        reviews=tuple(_review(r) for r in _list(_get(raw, "reviews"))[:MAX_REVIEWS]),
        location=extract_location(raw),
    )
