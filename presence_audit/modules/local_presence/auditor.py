"""Tier orchestrators: Self-Audit, Standard and Pro entry points.

Each entry point gathers its inputs, runs the scorer and recommendation
generator, and returns one fully built :class:`AnalysisResult`, or raises a
:class:`~presence_audit.errors.PresenceAuditError`. Nothing is published
half-built.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Sequence
from urllib.parse import quote

from presence_audit.errors import (
    ConfigurationError,
    InvalidInputError,
    InvalidReferenceError,
    MissingLocationError,
    NotFoundError,
)
from presence_audit.integrations.places_provider import PlaceDataProvider
from presence_audit.integrations.website_fetcher import WebsiteTextFetcher
from presence_audit.models.analysis import (
    AnalysisResult,
    ApiUsage,
    AuditTier,
    ComparisonRow,
    CompetitorCard,
    NapCheck,
    Verification,
)
from presence_audit.models.profile import CompetitorProfile, PlacePrediction, PlaceProfile
from presence_audit.modules.local_presence.benchmark import calculate_benchmark
from presence_audit.modules.local_presence.checklist import SelfAuditChecklist, SelfAuditInputs
from presence_audit.modules.local_presence.competitor_locator import (
    PRO_COMPETITOR_LIMIT,
    STANDARD_COMPETITOR_LIMIT,
    STANDARD_RADIUS_METERS,
    CompetitorLocator,
)
from presence_audit.modules.local_presence.nap_checker import check_nap
from presence_audit.modules.local_presence.normalizer import SUBJECT_FIELDS, normalize_place
from presence_audit.modules.local_presence.quota import DAILY_LIMIT_DEFAULT, QuotaGovernor
from presence_audit.modules.local_presence.recommendations import (
    OWNER_CHECKLIST,
    better_at,
    build_pro_action_plan,
    build_self_audit_recommendations,
    build_standard_recommendations,
)
from presence_audit.modules.local_presence.scoring import (
    LiveProfileStrategy,
    ProfileChecklistStrategy,
    Scorer,
    ScoreCard,
    ScoringContext,
    score_checklist,
)
from presence_audit.utils.helpers import dedupe, grade_from_score, meters_to_miles, round_half_up
from presence_audit.utils.validators import extract_place_id, validate_radius

logger = logging.getLogger(__name__)

MAX_NOTES = 8
PREDICTION_LIMIT = 6
TOP_COMPETITORS = 3
MAPS_PLACE_URL = "https://www.google.com/maps/search/?api=1&query_place_id={place_id}"


@dataclass(frozen=True)
class AuditSettings:
    daily_limit: int = DAILY_LIMIT_DEFAULT
    prediction_limit: int = PREDICTION_LIMIT
    standard_radius_meters: int = STANDARD_RADIUS_METERS
    standard_competitor_limit: int = STANDARD_COMPETITOR_LIMIT
    pro_competitor_limit: int = PRO_COMPETITOR_LIMIT


@dataclass(frozen=True)
class StandardAuditRequest:
    """Which business to audit: an explicit place id, a maps link, or name + location."""

    business_name: str = ""
    location: str = ""
    industry: str = ""
    google_maps_url: str = ""
    place_id: str = ""


@dataclass(frozen=True)
class ProAuditRequest:
    business_name: str
    location: str
    radius_meters: int
    lite_score: int = 0
    industry: str = ""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class PresenceAuditor:
    """Run local presence audits against a place data provider.

    Usage::

        auditor = PresenceAuditor(provider, QuotaGovernor(InMemoryQuotaStore()))
        predictions = await auditor.get_predictions("Acme Plumbing", "Denver, CO")
        result = await auditor.analyze_standard(
            StandardAuditRequest(place_id=predictions[0].place_id)
        )
        print(result.overall_score, result.grade)
    """

    def __init__(
        self,
        provider: Optional[PlaceDataProvider],
        governor: QuotaGovernor,
        fetcher: Optional[WebsiteTextFetcher] = None,
        settings: Optional[AuditSettings] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._provider = provider
        self._governor = governor
        self._fetcher = fetcher
        self._settings = settings or AuditSettings()
        self._clock = clock
        self._locator = (
            CompetitorLocator(
                provider,
                governor,
                standard_radius_meters=self._settings.standard_radius_meters,
                standard_limit=self._settings.standard_competitor_limit,
                pro_limit=self._settings.pro_competitor_limit,
            )
            if provider is not None
            else None
        )

    @property
    def settings(self) -> AuditSettings:
        return self._settings

    def _require_provider(self) -> PlaceDataProvider:
        if self._provider is None:
            raise ConfigurationError("No place data provider is configured")
        return self._provider

    def _limit(self, daily_limit: Optional[int]) -> int:
        return self._settings.daily_limit if daily_limit is None else daily_limit

    # ------------------------------------------------------------------
    # Quota
    # ------------------------------------------------------------------

    def api_usage(self, daily_limit: Optional[int] = None) -> ApiUsage:
        return self._governor.snapshot(self._limit(daily_limit))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_predictions(
        self,
        business_name: str,
        location: str = "",
        daily_limit: Optional[int] = None,
    ) -> list[PlacePrediction]:
        """Autocomplete suggestions for ``business_name location`` (at most 6)."""
        query = f"{(business_name or '').strip()} {(location or '').strip()}".strip()
        if not query:
            raise InvalidInputError("Enter a business name and location")
        provider = self._require_provider()
        self._governor.consume(self._limit(daily_limit))
        predictions = await provider.predict(query)
        logger.info("Predictions for %r: %d", query, len(predictions))
        return list(predictions)[: self._settings.prediction_limit]

    async def _resolve_place_id(
        self,
        request: StandardAuditRequest,
        daily_limit: int,
    ) -> str:
        if request.place_id:
            return request.place_id
        if request.google_maps_url:
            place_id = extract_place_id(request.google_maps_url)
            if not place_id:
                raise InvalidReferenceError(
                    "That Google Maps link does not contain a place id. "
                    "Use the share link of the business listing."
                )
            return place_id
        if not (request.business_name or request.location):
            raise InvalidInputError("Provide a place id, a maps link, or a business name and location")
        predictions = await self.get_predictions(
            request.business_name, request.location, daily_limit
        )
        if not predictions:
            raise NotFoundError(
                "Business not found. Try adding the city or the exact listing name."
            )
        return predictions[0].place_id

    async def _load_subject(self, place_id: str, daily_limit: int) -> PlaceProfile:
        provider = self._require_provider()
        self._governor.consume(daily_limit)
        raw = await provider.details(place_id, SUBJECT_FIELDS)
        place = normalize_place(raw)
        if not place.place_id:
            place = normalize_place({**raw, "place_id": place_id})
        if place.location is None:
            raise MissingLocationError(
                f"Unable to locate {place.name or place_id}; competitors cannot be searched"
            )
        logger.info("Resolved subject %s (%s)", place.name, place.place_id)
        return place

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    async def analyze_standard(
        self,
        request: StandardAuditRequest,
        daily_limit: Optional[int] = None,
    ) -> AnalysisResult:
        """Live audit of one business against up to five nearby competitors."""
        limit = self._limit(daily_limit)
        place_id = await self._resolve_place_id(request, limit)
        place = await self._load_subject(place_id, limit)
        competitors = await self._locator.find_standard(place, request.industry, limit)

        benchmark = calculate_benchmark(place, competitors)
        now = self._clock()
        card = Scorer(LiveProfileStrategy()).score(
            ScoringContext(
                place=place,
                benchmark=benchmark,
                industry=request.industry,
                now=now.timestamp(),
            )
        )
        recommendations = build_standard_recommendations(place, benchmark, request.industry)
        logger.info(
            "Standard audit %s: %d competitors, score %d (%s)",
            place.name, benchmark.competitor_count, card.overall_score, card.grade,
        )
        return AnalysisResult(
            tier=AuditTier.STANDARD,
            place=place,
            competitors=tuple(competitors),
            benchmarks=benchmark,
            categories=card.categories,
            overall_score=card.overall_score,
            grade=card.grade,
            recommendations=tuple(recommendations),
            generated_at=now.isoformat(),
            notes=card.notes,
            api_usage=self._governor.snapshot(limit),
            radius_meters=self._settings.standard_radius_meters,
        )

    def calculate_self_audit(
        self,
        checklist: SelfAuditChecklist,
        inputs: Optional[SelfAuditInputs] = None,
    ) -> AnalysisResult:
        """Score owner-reported answers; no provider calls and no quota use."""
        inputs = inputs or SelfAuditInputs()
        card = score_checklist(checklist)
        recommendations = build_self_audit_recommendations(checklist)
        return AnalysisResult(
            tier=AuditTier.SELF_AUDIT,
            place=None,
            competitors=(),
            benchmarks=None,
            categories=card.categories,
            overall_score=card.overall_score,
            grade=card.grade,
            recommendations=tuple(recommendations),
            generated_at=self._clock().isoformat(),
            owner_checklist=OWNER_CHECKLIST,
            radius_meters=inputs.radius_meters,
        )

    async def analyze_pro(
        self,
        request: ProAuditRequest,
        daily_limit: Optional[int] = None,
    ) -> AnalysisResult:
        """Live audit against the ten most prominent competitors within a preset radius."""
        ok, error = validate_radius(request.radius_meters)
        if not ok:
            raise InvalidInputError(error)
        limit = self._limit(daily_limit)

        predictions = await self.get_predictions(request.business_name, request.location, limit)
        if not predictions:
            raise NotFoundError("Business not found. Try adding the city or the exact listing name.")
        place = await self._load_subject(predictions[0].place_id, limit)
        competitors = await self._locator.find_pro(place, request.radius_meters, limit)

        nap = await self._check_nap(place)
        now = self._clock()
        strategy = ProfileChecklistStrategy()
        subject_card = Scorer(strategy).score(
            ScoringContext(place=place, nap=nap, industry=request.industry, now=now.timestamp())
        )
        competitor_cards = self._score_competitors(
            place, competitors, subject_card, strategy, request.industry, now.timestamp()
        )
        top3 = competitor_cards[:TOP_COMPETITORS]
        top3_scores = [scores for _, scores in top3]
        top3_average = {
            key: _mean([scores[key] for scores in top3_scores])
            for key in subject_card.scores()
        }

        actions = build_pro_action_plan(subject_card.scores(), top3_average)
        radius_miles = round_half_up(meters_to_miles(request.radius_meters) * 10) / 10
        notes = []
        if nap.phone is Verification.INCONSISTENT:
            notes.append("Phone mismatch detected between your profile and website (best-effort).")
        if nap.address is Verification.INCONSISTENT:
            notes.append("Address mismatch detected between your profile and website (best-effort).")
        if nap.website_fetched is False and place.website:
            notes.append("Your website could not be fetched, so NAP consistency is unverified.")
        notes.append(
            f"Competitors ranked by rating × review count within {radius_miles:g} miles."
        )
        logger.info(
            "Pro audit %s: %d competitors within %gmi, score %d",
            place.name, len(competitors), radius_miles, subject_card.overall_score,
        )
        return AnalysisResult(
            tier=AuditTier.PRO,
            place=place,
            competitors=tuple(competitors),
            benchmarks=calculate_benchmark(place, competitors),
            categories=subject_card.categories,
            overall_score=subject_card.overall_score,
            grade=subject_card.grade,
            recommendations=tuple(actions),
            generated_at=now.isoformat(),
            notes=tuple(dedupe(notes, limit=MAX_NOTES)),
            api_usage=self._governor.snapshot(limit),
            owner_checklist=OWNER_CHECKLIST,
            competitor_cards=tuple(c for c, _ in competitor_cards),
            comparison=tuple(self._comparison(place, [c for c, _ in top3])),
            nap=nap,
            radius_meters=request.radius_meters,
            baseline_score=request.lite_score,
        )

    # ------------------------------------------------------------------
    # Pro helpers
    # ------------------------------------------------------------------

    async def _check_nap(self, place: PlaceProfile) -> NapCheck:
        if self._fetcher is None or not place.website:
            return NapCheck()
        html = await self._fetcher.fetch(place.website)
        return check_nap(place, html)

    @staticmethod
    def _score_competitors(
        place: PlaceProfile,
        competitors: Sequence[CompetitorProfile],
        subject_card: ScoreCard,
        strategy: ProfileChecklistStrategy,
        industry: str,
        now: float,
    ) -> list[tuple[CompetitorCard, Mapping[str, float]]]:
        """Competitor cards with their category scores, best score first."""
        subject_scores = subject_card.scores()
        scored = []
        for competitor in competitors:
            source = competitor.source or PlaceProfile(place_id=competitor.place_id, name=competitor.name)
            card = Scorer(strategy).score(ScoringContext(place=source, industry=industry, now=now))
            scores = card.scores()
            distance = competitor.distance_miles or 0.0
            scored.append((
                CompetitorCard(
                    place_id=competitor.place_id,
                    name=competitor.name or "Competitor",
                    score=card.overall_score,
                    grade=grade_from_score(card.overall_score),
                    distance_miles=round_half_up(distance * 10) / 10,
                    photo_count=competitor.photo_count,
                    photo_delta=competitor.photo_count - place.photo_count,
                    rating=competitor.rating or 0.0,
                    review_count=competitor.review_count or 0,
                    better_at=tuple(better_at(subject_scores, scores)),
                    maps_url=MAPS_PLACE_URL.format(place_id=quote(competitor.place_id, safe="")),
                ),
                scores,
            ))
        scored.sort(key=lambda item: item[0].score, reverse=True)
        return scored

    @staticmethod
    def _comparison(
        place: PlaceProfile,
        top3: Sequence[CompetitorCard],
    ) -> list[ComparisonRow]:
        return [
            ComparisonRow(
                metric="Rating",
                subject=f"{place.rating or 0:g}",
                top3_average=f"{_mean([c.rating for c in top3]):.2f}",
            ),
            ComparisonRow(
                metric="Review count",
                subject=str(place.review_count or 0),
                top3_average=str(round_half_up(_mean([c.review_count for c in top3]))),
            ),
            ComparisonRow(
                metric="Photo count",
                subject=str(place.photo_count),
                top3_average=str(round_half_up(_mean([c.photo_count for c in top3]))),
            ),
        ]
