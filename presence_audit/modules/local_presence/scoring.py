"""Category scoring for all three audit tiers.

Each tier plugs a :class:`ScoringStrategy` into the same :class:`Scorer`:

* :class:`LiveProfileStrategy` (Standard): five 0-100 categories from the live
  profile and its benchmark, overall = rounded median of the five.
* :class:`PointTableStrategy` (Self-Audit): a fixed point table over owner
  answers, five categories summing to 100, overall = the sum.
* :class:`ProfileChecklistStrategy` (Pro): infers the owner answers from a live
  profile and then scores them with the point table.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Sequence

from presence_audit.models.analysis import Benchmark, CategoryScore, NapCheck
from presence_audit.models.profile import PlaceProfile
from presence_audit.modules.local_presence.checklist import (
    PostFrequency,
    SelfAuditChecklist,
    checklist_from_place,
)
from presence_audit.modules.local_presence.statistics import median
from presence_audit.utils.helpers import clamp, dedupe, grade_from_score, round_half_up

logger = logging.getLogger(__name__)

MAX_NOTES = 8

# Fixed category order shared by every tier.
PROFILE_COMPLETENESS = "profile_completeness"
VISUAL_ASSETS = "visual_assets"
REVIEW_PERFORMANCE = "review_performance"
LOCAL_SEO = "local_seo"
COMPETITOR_GAP = "competitor_gap"
POSTING_ACTIVITY = "posting_activity"
CITATIONS_CONSISTENCY = "citations_consistency"

CATEGORY_LABELS: dict[str, str] = {
    PROFILE_COMPLETENESS: "Profile Completeness",
    VISUAL_ASSETS: "Visual Assets",
    REVIEW_PERFORMANCE: "Review Performance",
    LOCAL_SEO: "Local SEO",
    COMPETITOR_GAP: "Competitor Gap",
    POSTING_ACTIVITY: "Posting Activity",
    CITATIONS_CONSISTENCY: "Citations Consistency",
}

NOTE_DESCRIPTION_UNAVAILABLE = (
    "The business description is not always exposed by the place data provider; "
    "verify it directly in your profile."
)
NOTE_REVIEWS_SUBSET = (
    "Only a subset of reviews is available, so recent activity is estimated from "
    "the reviews returned."
)
NOTE_POSTS_QA = (
    "Profile Q&A and Posts cannot be read through the place data provider; they "
    "are recommended but not verified."
)
NOTE_PHOTO_METADATA = (
    "Photo recency, variety and video presence are not exposed; visual assets are "
    "scored on photo volume against competitors."
)
NOTE_REVIEW_RESPONSES = (
    "Review response rate and speed are not exposed; respond inside your profile "
    "even though responses cannot be verified here."
)
NOTE_SERVICES_QA = (
    "Service/product listings and Q&A usage are not exposed; they are recommended "
    "but not verified."
)


@dataclass(frozen=True)
class CategoryResult:
    score: float
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoringContext:
    """Everything a strategy may read. Strategies ignore what they do not need."""

    place: Optional[PlaceProfile] = None
    benchmark: Optional[Benchmark] = None
    checklist: Optional[SelfAuditChecklist] = None
    nap: Optional[NapCheck] = None
    industry: str = ""
    now: Optional[float] = None


@dataclass(frozen=True)
class ScoreCard:
    categories: tuple[CategoryScore, ...]
    overall_score: int
    grade: str
    notes: tuple[str, ...] = ()
    checklist: Optional[SelfAuditChecklist] = None

    def scores(self) -> dict[str, float]:
        return {c.category: c.score for c in self.categories}


# ---------------------------------------------------------------------------
# Standard tier category functions
# ---------------------------------------------------------------------------


def score_profile_completeness(
    place: PlaceProfile,
    industry: str = "",
    now: Optional[float] = None,
) -> CategoryResult:
    score = 0.0
    notes: list[str] = []

    hours = place.opening_hours.weekday_text if place.opening_hours else ()
    if len(hours) >= 7:
        score += 10
    elif len(hours) >= 5:
        score += 6
    elif len(hours) > 0:
        score += 3

    if place.phone:
        score += 10
    if place.website:
        score += 10

    desc = place.description or ""
    keyword = (industry or "").strip().lower()
    if len(desc) >= 200:
        score += 15 if keyword and keyword in desc.lower() else 12
    elif len(desc) >= 80:
        score += 6
    elif len(desc) > 0:
        score += 2
    else:
        notes.append(NOTE_DESCRIPTION_UNAVAILABLE)

    type_count = len(place.types)
    if type_count >= 5:
        score += 10
    elif type_count >= 3:
        score += 6
    elif type_count > 0:
        score += 3

    score += clamp(place.photo_count / 20 * 20, 0, 20)

    # Posts are not readable; a recent review is the activity signal.
    if place.has_recent_review(now):
        score += 15
    if not place.reviews:
        notes.append(NOTE_REVIEWS_SUBSET)

    notes.append(NOTE_POSTS_QA)
    return CategoryResult(round_half_up(clamp(score, 0, 100)), tuple(notes))


def _ratio(value: float, median_value: float) -> float:
    if median_value > 0:
        return value / median_value
    return 1.0 if value > 0 else 0.0


def score_visual_assets(place: PlaceProfile, benchmark: Benchmark) -> CategoryResult:
    count = place.photo_count
    ratio = _ratio(count, benchmark.medians.photo_count or 0)
    score = round_half_up(clamp(ratio * 85 + (15 if count >= 20 else 0), 0, 100))
    return CategoryResult(score, (NOTE_PHOTO_METADATA,))


def score_review_performance(
    place: PlaceProfile,
    benchmark: Benchmark,
    now: Optional[float] = None,
) -> CategoryResult:
    rating = place.rating or 0.0
    ratio = _ratio(place.review_count or 0, benchmark.medians.review_count or 0)
    recent = place.recent_review_count(now)
    score = (
        clamp(rating / 5 * 40, 0, 40)
        + clamp(ratio * 40, 0, 40)
        + clamp(recent / 2 * 20, 0, 20)
    )
    return CategoryResult(round_half_up(clamp(score, 0, 100)), (NOTE_REVIEW_RESPONSES,))


def score_local_seo(place: PlaceProfile, industry: str = "") -> CategoryResult:
    types = place.types
    primary = 25 if types else 0
    secondary = clamp((len(types) - 1) / 3 * 25, 0, 25)

    desc = (place.description or "").lower()
    keyword = (industry or "").strip().lower()
    if keyword:
        if keyword in desc:
            keyword_score = 25
        elif len(desc) >= 200:
            keyword_score = 12
        else:
            keyword_score = 0
    elif len(desc) >= 200:
        keyword_score = 18
    elif len(desc) >= 80:
        keyword_score = 10
    else:
        keyword_score = 0

    basics = (
        (10 if place.phone else 0)
        + (10 if place.website else 0)
        + (5 if place.formatted_address else 0)
    )
    score = round_half_up(clamp(primary + secondary + keyword_score + basics, 0, 100))
    return CategoryResult(score, (NOTE_SERVICES_QA,))


def score_competitor_gap(benchmark: Benchmark) -> CategoryResult:
    """50 at the median; each metric moves the score by up to 25 either way."""
    gaps, medians = benchmark.gaps, benchmark.medians
    score = (
        50
        + clamp(gaps.rating * 25, -25, 25)
        + clamp(gaps.review_count / max(1, medians.review_count) * 25, -25, 25)
        + clamp(gaps.photo_count / max(1, medians.photo_count) * 25, -25, 25)
    )
    return CategoryResult(round_half_up(clamp(score, 0, 100)))


# ---------------------------------------------------------------------------
# Point table (Self-Audit and Pro)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PointTable:
    """Points awarded per checklist answer. Category maxima sum to 100."""

    profile: dict[str, int] = field(default_factory=lambda: {
        "has_hours": 6,
        "has_phone": 4,
        "has_website": 4,
        "has_description_optimized": 6,
        "has_services_listed": 4,
        "has_primary_category_set": 3,
        "has_secondary_categories": 3,
    })
    photos: dict[str, int] = field(default_factory=lambda: {
        "0-9": 5, "10-19": 12, "20-49": 20, "50+": 25,
    })
    review_counts: dict[str, int] = field(default_factory=lambda: {
        "0-10": 4, "11-25": 8, "26-50": 12, "51-100": 15, "100+": 15,
    })
    ratings: dict[str, int] = field(default_factory=lambda: {
        "<4.0": 0, "4.0-4.3": 4, "4.4-4.6": 7, "4.7-4.8": 9, "4.9-5.0": 10,
    })
    post_frequency: dict[str, int] = field(default_factory=lambda: {
        "none": 0, "monthly": 6, "weekly": 10,
    })
    recent_post_bonus: int = 2
    citations: dict[str, int] = field(default_factory=lambda: {
        "nap_consistent": 4,
        "website_consistent": 3,
        "duplicates_cleaned": 2,
        "citations_updated_recently": 1,
    })
    maxima: dict[str, int] = field(default_factory=lambda: {
        PROFILE_COMPLETENESS: 30,
        VISUAL_ASSETS: 25,
        REVIEW_PERFORMANCE: 25,
        POSTING_ACTIVITY: 10,
        CITATIONS_CONSISTENCY: 10,
    })

    def score(self, checklist: SelfAuditChecklist) -> dict[str, float]:
        """Points per category, in the fixed category order."""

        def flags(weights: dict[str, int]) -> int:
            return sum(w for name, w in weights.items() if getattr(checklist, name))

        def lookup(table: dict[str, int], answer) -> int:
            if answer is None:
                return 0
            return table.get(answer.value, 0)

        frequency = checklist.post_frequency or PostFrequency.NONE
        posting = lookup(self.post_frequency, frequency) + (
            self.recent_post_bonus if checklist.posted_last_30_days else 0
        )
        raw = {
            PROFILE_COMPLETENESS: flags(self.profile),
            VISUAL_ASSETS: lookup(self.photos, checklist.photo_count_range),
            REVIEW_PERFORMANCE: lookup(self.review_counts, checklist.review_count_range)
            + lookup(self.ratings, checklist.rating_range),
            POSTING_ACTIVITY: posting,
            CITATIONS_CONSISTENCY: flags(self.citations),
        }
        return {key: clamp(value, 0, self.maxima[key]) for key, value in raw.items()}


DEFAULT_POINT_TABLE = PointTable()


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class ScoringStrategy(ABC):
    """Produces the category scores and the overall roll-up for one tier."""

    name: str = "base"

    @abstractmethod
    def evaluate(self, ctx: ScoringContext) -> list[tuple[CategoryScore, tuple[str, ...]]]:
        """Return ``(category score, notes)`` pairs in display order."""

    @abstractmethod
    def overall(self, categories: Sequence[CategoryScore]) -> int:
        ...

    def checklist_for(self, ctx: ScoringContext) -> Optional[SelfAuditChecklist]:
        return ctx.checklist


class LiveProfileStrategy(ScoringStrategy):
    name = "live_profile"

    def evaluate(self, ctx: ScoringContext) -> list[tuple[CategoryScore, tuple[str, ...]]]:
        if ctx.place is None or ctx.benchmark is None:
            raise ValueError("Live profile scoring needs a place and a benchmark")
        place, bench = ctx.place, ctx.benchmark
        results = [
            (PROFILE_COMPLETENESS, score_profile_completeness(place, ctx.industry, ctx.now)),
            (VISUAL_ASSETS, score_visual_assets(place, bench)),
            (REVIEW_PERFORMANCE, score_review_performance(place, bench, ctx.now)),
            (LOCAL_SEO, score_local_seo(place, ctx.industry)),
            (COMPETITOR_GAP, score_competitor_gap(bench)),
        ]
        return [
            (CategoryScore(key, result.score, CATEGORY_LABELS[key]), result.notes)
            for key, result in results
        ]

    def overall(self, categories: Sequence[CategoryScore]) -> int:
        # Median keeps one outlier category from dominating.
        return round_half_up(median([c.score for c in categories]))


class PointTableStrategy(ScoringStrategy):
    name = "point_table"

    def __init__(self, table: PointTable = DEFAULT_POINT_TABLE):
        self.table = table

    def evaluate(self, ctx: ScoringContext) -> list[tuple[CategoryScore, tuple[str, ...]]]:
        checklist = self.checklist_for(ctx)
        if checklist is None:
            raise ValueError("Point table scoring needs a checklist")
        points = self.table.score(checklist)
        return [
            (CategoryScore(key, value, CATEGORY_LABELS[key], self.table.maxima[key]), ())
            for key, value in points.items()
        ]

    def overall(self, categories: Sequence[CategoryScore]) -> int:
        return int(clamp(round_half_up(sum(c.score for c in categories)), 0, 100))


class ProfileChecklistStrategy(PointTableStrategy):
    """Point-table scoring over answers inferred from a live profile."""

    name = "profile_checklist"

    def checklist_for(self, ctx: ScoringContext) -> Optional[SelfAuditChecklist]:
        if ctx.place is None:
            return None
        return checklist_from_place(ctx.place, ctx.nap, ctx.now)


class Scorer:
    """Runs a strategy and folds its output into a :class:`ScoreCard`.

    Usage::

        card = Scorer(LiveProfileStrategy()).score(
            ScoringContext(place=place, benchmark=bench, industry="plumber")
        )
    """

    def __init__(self, strategy: ScoringStrategy):
        self.strategy = strategy

    def score(self, ctx: ScoringContext) -> ScoreCard:
        evaluated = self.strategy.evaluate(ctx)
        categories = tuple(category for category, _ in evaluated)
        notes = dedupe(
            (note for _, category_notes in evaluated for note in category_notes),
            limit=MAX_NOTES,
        )
        overall = self.strategy.overall(categories)
        logger.debug(
            "%s scoring: %s -> %d",
            self.strategy.name,
            {c.category: c.score for c in categories},
            overall,
        )
        return ScoreCard(
            categories=categories,
            overall_score=overall,
            grade=grade_from_score(overall),
            notes=tuple(notes),
            checklist=self.strategy.checklist_for(ctx),
        )


def score_checklist(
    checklist: SelfAuditChecklist,
    table: PointTable = DEFAULT_POINT_TABLE,
) -> ScoreCard:
    """Convenience wrapper used wherever owner answers are scored directly."""
    return Scorer(PointTableStrategy(table)).score(ScoringContext(checklist=checklist))
