"""Benchmark, scoring, and recommendation records that make up an audit result."""

from __future__ import annotations

from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, Optional

from presence_audit.models.profile import CompetitorProfile, PlaceProfile
from presence_audit.utils.helpers import clamp, round_half_up, slugify

IMPACT_PERCENT_MIN = 1
IMPACT_PERCENT_MAX = 40


class AuditTier(str, Enum):
    SELF_AUDIT = "self_audit"
    STANDARD = "standard"
    PRO = "pro"


class Priority(str, Enum):
    """Recommendation priority. ``suggested`` and ``recommended`` share a rank."""

    CRITICAL = "critical"
    IMPORTANT = "important"
    SUGGESTED = "suggested"
    RECOMMENDED = "recommended"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]


PRIORITY_RANK: dict[Priority, int] = {
    Priority.CRITICAL: 0,
    Priority.IMPORTANT: 1,
    Priority.SUGGESTED: 2,
    Priority.RECOMMENDED: 2,
}


class Verification(str, Enum):
    """Outcome of a best-effort check that may not be able to run at all."""

    CONSISTENT = "consistent"
    INCONSISTENT = "inconsistent"
    UNKNOWN = "unknown"

    @classmethod
    def from_match(cls, matched: Optional[bool]) -> "Verification":
        if matched is None:
            return cls.UNKNOWN
        return cls.CONSISTENT if matched else cls.INCONSISTENT


@dataclass(frozen=True)
class MetricTriple:
    rating: float = 0.0
    review_count: float = 0.0
    photo_count: float = 0.0


@dataclass(frozen=True)
class Benchmark:
    """Subject vs competitors: medians, 1-based ranks (1 = best) and signed gaps."""

    competitor_count: int
    medians: MetricTriple
    rank: MetricTriple
    gaps: MetricTriple


@dataclass(frozen=True)
class CategoryScore:
    category: str
    score: float
    label: str
    max_score: int = 100

    def __post_init__(self) -> None:
        object.__setattr__(self, "score", clamp(self.score, 0, 100))


@dataclass(frozen=True)
class Recommendation:
    id: str
    priority: Priority
    title: str
    rationale: str
    expected_impact: str
    steps: tuple[str, ...]
    impact_percent: Optional[int] = None
    time_required: str = ""

    @classmethod
    def create(
        cls,
        priority: Priority,
        title: str,
        rationale: str,
        expected_impact: str,
        steps: list[str] | tuple[str, ...],
        impact_percent: Optional[float] = None,
        time_required: str = "",
    ) -> "Recommendation":
        """Build a recommendation with a slugified id and a bounded impact."""
        if impact_percent is not None:
            impact_percent = int(
                clamp(round_half_up(impact_percent), IMPACT_PERCENT_MIN, IMPACT_PERCENT_MAX)
            )
        return cls(
            id=slugify(f"{priority.value}:{title}"),
            priority=priority,
            title=title,
            rationale=rationale,
            expected_impact=expected_impact,
            steps=tuple(steps),
            impact_percent=impact_percent,
            time_required=time_required,
        )


@dataclass(frozen=True)
class ApiUsage:
    used_today: int
    daily_limit: int


@dataclass(frozen=True)
class NapCheck:
    """Best-effort name/address/phone match between a profile and its website."""

    phone: Verification = Verification.UNKNOWN
    address: Verification = Verification.UNKNOWN
    website_fetched: bool = False


@dataclass(frozen=True)
class CompetitorCard:
    place_id: str
    name: str
    score: int
    grade: str
    distance_miles: float
    photo_count: int
    photo_delta: int
    rating: float
    review_count: int
    better_at: tuple[str, ...]
    maps_url: str


@dataclass(frozen=True)
class ComparisonRow:
    metric: str
    subject: str
    top3_average: str


@dataclass(frozen=True)
class AnalysisResult:
    """Aggregate root of one audit run, built once and never mutated."""

    tier: AuditTier
    place: Optional[PlaceProfile]
    competitors: tuple[CompetitorProfile, ...]
    benchmarks: Optional[Benchmark]
    categories: tuple[CategoryScore, ...]
    overall_score: int
    grade: str
    recommendations: tuple[Recommendation, ...]
    generated_at: str
    notes: tuple[str, ...] = ()
    api_usage: Optional[ApiUsage] = None
    owner_checklist: tuple[str, ...] = ()
    competitor_cards: tuple[CompetitorCard, ...] = ()
    comparison: tuple[ComparisonRow, ...] = ()
    nap: Optional[NapCheck] = None
    radius_meters: Optional[int] = None
    baseline_score: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible dict (enums as values, tuples as lists)."""
        data = {
            name: getattr(self, name)
            for name in self.__dataclass_fields__
            if name != "competitors"
        }
        data["competitors"] = [c.to_dict() for c in self.competitors]
        return _plain(data)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return _plain(asdict(value))
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
