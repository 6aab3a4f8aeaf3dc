"""Nearby competitor discovery for the Standard and Pro tiers."""

import logging
from typing import Any, Optional, Sequence

from presence_audit.errors import RateLimitExceeded
from presence_audit.integrations.places_provider import PlaceDataProvider
from presence_audit.models.profile import CompetitorProfile, PlaceProfile
from presence_audit.modules.local_presence.normalizer import (
    COMPETITOR_FIELDS,
    SUBJECT_FIELDS,
    normalize_place,
)
from presence_audit.modules.local_presence.quota import DAILY_LIMIT_DEFAULT, QuotaGovernor
from presence_audit.utils.helpers import haversine_miles, meters_to_miles

logger = logging.getLogger(__name__)

GENERIC_TYPES = frozenset({"point_of_interest", "establishment"})
STANDARD_RADIUS_METERS = 5500
STANDARD_COMPETITOR_LIMIT = 5
PRO_COMPETITOR_LIMIT = 10


def category_hint(types: Sequence[str]) -> Optional[str]:
    """First place type that says something about the business."""
    return next((t for t in types if t not in GENERIC_TYPES), None)


def prominence(raw: dict[str, Any]) -> float:
    """Rating x review count of a raw nearby-search result."""
    rating = raw.get("rating") or 0
    total = raw.get("user_ratings_total") or 0
    try:
        return float(rating) * float(total)
    except (TypeError, ValueError):
        return 0.0


class CompetitorLocator:
    """Find and profile the businesses competing with an audited place.

    Every provider call is counted against the quota before it is issued.
    A competitor whose details cannot be fetched is skipped; a quota
    exhaustion aborts the whole search.

    Usage::

        locator = CompetitorLocator(provider, governor)
        competitors = await locator.find_standard(place, industry="plumber")
    """

    def __init__(
        self,
        provider: PlaceDataProvider,
        governor: QuotaGovernor,
        standard_radius_meters: int = STANDARD_RADIUS_METERS,
        standard_limit: int = STANDARD_COMPETITOR_LIMIT,
        pro_limit: int = PRO_COMPETITOR_LIMIT,
    ):
        self._provider = provider
        self._governor = governor
        self._standard_radius = standard_radius_meters
        self._standard_limit = standard_limit
        self._pro_limit = pro_limit

    async def find_standard(
        self,
        subject: PlaceProfile,
        industry: str = "",
        daily_limit: int = DAILY_LIMIT_DEFAULT,
    ) -> list[CompetitorProfile]:
        """Up to five prominent neighbours, in provider order."""
        if subject.location is None:
            return []
        self._governor.consume(daily_limit)
        results = await self._provider.nearby_search(
            subject.location,
            self._standard_radius,
            category_hint=category_hint(subject.types),
            keyword=(industry or "").strip() or None,
        )
        candidates = self._exclude_subject(results, subject)[: self._standard_limit]
        logger.info(
            "Standard search for %s: %d nearby, %d candidates",
            subject.name, len(results), len(candidates),
        )
        return await self._profile_all(candidates, subject, COMPETITOR_FIELDS, daily_limit)

    async def find_pro(
        self,
        subject: PlaceProfile,
        radius_meters: int,
        daily_limit: int = DAILY_LIMIT_DEFAULT,
    ) -> list[CompetitorProfile]:
        """Top ten neighbours within *radius_meters*, ranked by rating x review count."""
        if subject.location is None:
            return []
        self._governor.consume(daily_limit)
        results = await self._provider.nearby_search(
            subject.location,
            radius_meters,
            category_hint=category_hint(subject.types),
        )
        candidates = sorted(
            self._exclude_subject(results, subject),
            key=prominence,
            reverse=True,
        )[: self._pro_limit]
        logger.info(
            "Pro search for %s within %dm: %d nearby, %d candidates",
            subject.name, radius_meters, len(results), len(candidates),
        )
        return await self._profile_all(
            candidates, subject, SUBJECT_FIELDS, daily_limit,
            fallback_miles=meters_to_miles(radius_meters),
        )

    @staticmethod
    def _exclude_subject(
        results: Sequence[dict[str, Any]],
        subject: PlaceProfile,
    ) -> list[dict[str, Any]]:
        return [
            r for r in results
            if r.get("place_id") and r.get("place_id") != subject.place_id
        ]

    async def _profile_all(
        self,
        candidates: Sequence[dict[str, Any]],
        subject: PlaceProfile,
        fields: Sequence[str],
        daily_limit: int,
        fallback_miles: Optional[float] = None,
    ) -> list[CompetitorProfile]:
        competitors: list[CompetitorProfile] = []
        for candidate in candidates:
            place_id = candidate["place_id"]
            self._governor.consume(daily_limit)
            try:
                raw = await self._provider.details(place_id, fields)
            except RateLimitExceeded:
                raise
            except Exception as exc:
                logger.warning("Skipping competitor %s: %s", place_id, exc)
                continue
            place = normalize_place(raw)
            if not place.place_id:
                place = normalize_place({**raw, "place_id": place_id})
            distance = self._distance(subject, place, fallback_miles)
            competitors.append(CompetitorProfile.from_place(place, distance))
        logger.info("Profiled %d/%d competitors", len(competitors), len(candidates))
        return competitors

    @staticmethod
    def _distance(
        subject: PlaceProfile,
        place: PlaceProfile,
        fallback_miles: Optional[float],
    ) -> Optional[float]:
        if subject.location is None or place.location is None:
            return fallback_miles
        return haversine_miles(
            subject.location.lat, subject.location.lng,
            place.location.lat, place.location.lng,
        )
