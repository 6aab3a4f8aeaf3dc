"""Self-audit checklist answers and the bridge from a live profile to them."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Optional

from presence_audit.errors import InvalidInputError
from presence_audit.models.analysis import NapCheck, Verification
from presence_audit.models.profile import PlaceProfile


class PhotoCountRange(str, Enum):
    UNDER_10 = "0-9"
    FROM_10 = "10-19"
    FROM_20 = "20-49"
    FIFTY_PLUS = "50+"


class ReviewCountRange(str, Enum):
    UP_TO_10 = "0-10"
    FROM_11 = "11-25"
    FROM_26 = "26-50"
    FROM_51 = "51-100"
    HUNDRED_PLUS = "100+"


class RatingRange(str, Enum):
    UNDER_4 = "<4.0"
    FROM_4_0 = "4.0-4.3"
    FROM_4_4 = "4.4-4.6"
    FROM_4_7 = "4.7-4.8"
    FROM_4_9 = "4.9-5.0"


class PostFrequency(str, Enum):
    NONE = "none"
    MONTHLY = "monthly"
    WEEKLY = "weekly"


@dataclass(frozen=True)
class SelfAuditChecklist:
    """Owner-reported answers. Unanswered ranges score zero."""

    # Profile completeness
    has_hours: bool = False
    has_phone: bool = False
    has_website: bool = False
    has_description_optimized: bool = False
    has_services_listed: bool = False
    has_primary_category_set: bool = False
    has_secondary_categories: bool = False
    # Visual assets
    photo_count_range: Optional[PhotoCountRange] = None
    # Review performance
    review_count_range: Optional[ReviewCountRange] = None
    rating_range: Optional[RatingRange] = None
    # Posting activity
    post_frequency: PostFrequency = PostFrequency.NONE
    posted_last_30_days: bool = False
    # Citations consistency
    nap_consistent: bool = False
    website_consistent: bool = False
    duplicates_cleaned: bool = False
    citations_updated_recently: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SelfAuditChecklist":
        """Build a checklist from loosely-typed input, rejecting unknown range values."""
        enum_fields = {
            "photo_count_range": PhotoCountRange,
            "review_count_range": ReviewCountRange,
            "rating_range": RatingRange,
            "post_frequency": PostFrequency,
        }
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data or data[f.name] is None:
                continue
            value = data[f.name]
            enum_cls = enum_fields.get(f.name)
            if enum_cls is not None:
                try:
                    value = enum_cls(value)
                except ValueError:
                    allowed = ", ".join(m.value for m in enum_cls)
                    raise InvalidInputError(
                        f"Invalid {f.name} {value!r}; expected one of: {allowed}"
                    ) from None
            else:
                value = _as_flag(f.name, value)
            kwargs[f.name] = value
        return cls(**kwargs)


_TRUE_WORDS = {"true", "yes", "y", "on", "1"}
_FALSE_WORDS = {"false", "no", "n", "off", "0", ""}


def _as_flag(name: str, value: Any) -> bool:
    """Read a yes/no answer; strings are parsed, not truth-tested."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise InvalidInputError(f"Invalid {name} {value!r}; expected true or false")


@dataclass(frozen=True)
class SelfAuditInputs:
    radius_meters: int = 1609


def photo_range_for(count: int) -> PhotoCountRange:
    if count >= 50:
        return PhotoCountRange.FIFTY_PLUS
    if count >= 20:
        return PhotoCountRange.FROM_20
    if count >= 10:
        return PhotoCountRange.FROM_10
    return PhotoCountRange.UNDER_10


def review_range_for(count: int) -> ReviewCountRange:
    if count >= 100:
        return ReviewCountRange.HUNDRED_PLUS
    if count >= 51:
        return ReviewCountRange.FROM_51
    if count >= 26:
        return ReviewCountRange.FROM_26
    if count >= 11:
        return ReviewCountRange.FROM_11
    return ReviewCountRange.UP_TO_10


def rating_range_for(rating: float) -> RatingRange:
    if rating >= 4.9:
        return RatingRange.FROM_4_9
    if rating >= 4.7:
        return RatingRange.FROM_4_7
    if rating >= 4.4:
        return RatingRange.FROM_4_4
    if rating >= 4.0:
        return RatingRange.FROM_4_0
    return RatingRange.UNDER_4


def checklist_from_place(
    place: PlaceProfile,
    nap: Optional[NapCheck] = None,
    now: Optional[float] = None,
) -> SelfAuditChecklist:
    """Infer checklist answers from a live profile.

    Signals the provider cannot see are approximated: category count stands
    in for services, a review in the last 30 days stands in for posting, and
    duplicate cleanup / citation freshness are assumed not done. A verified
    website mismatch (phone or address) turns the matching citation answer off;
    an unverifiable check leaves it untouched.
    """
    recent = place.has_recent_review(now)
    type_count = len(place.types)
    checklist = SelfAuditChecklist(
        has_hours=place.has_hours,
        has_phone=bool(place.phone),
        has_website=bool(place.website),
        has_description_optimized=len(place.description) >= 200,
        has_services_listed=type_count >= 3,
        has_primary_category_set=type_count >= 1,
        has_secondary_categories=type_count >= 4,
        photo_count_range=photo_range_for(place.photo_count),
        review_count_range=review_range_for(place.review_count or 0),
        rating_range=rating_range_for(place.rating or 0.0),
        post_frequency=PostFrequency.MONTHLY if recent else PostFrequency.NONE,
        posted_last_30_days=recent,
        nap_consistent=bool(place.phone) and bool(place.formatted_address),
        website_consistent=bool(place.website),
        duplicates_cleaned=False,
        citations_updated_recently=False,
    )
    if nap is not None:
        if nap.phone is Verification.INCONSISTENT:
            checklist = replace(checklist, nap_consistent=False)
        if nap.address is Verification.INCONSISTENT:
            checklist = replace(checklist, website_consistent=False)
    return checklist
