"""Median / rank / gap benchmark of a business against its competitors."""

from typing import Sequence

from presence_audit.models.analysis import Benchmark, MetricTriple
from presence_audit.models.profile import CompetitorProfile, PlaceProfile
from presence_audit.modules.local_presence.statistics import gap, median, rank

METRICS: tuple[str, ...] = ("rating", "review_count", "photo_count")


def _metrics(entity: PlaceProfile | CompetitorProfile) -> dict[str, float]:
    return {
        "rating": entity.rating or 0.0,
        "review_count": entity.review_count or 0,
        "photo_count": entity.photo_count,
    }


def calculate_benchmark(
    subject: PlaceProfile,
    competitors: Sequence[CompetitorProfile],
) -> Benchmark:
    """Compare *subject* with *competitors* on rating, review count and photo count.

    The subject is always part of the median set, so N competitors give a
    median over N+1 points. Ranks are 1-based with 1 = best and always fall
    in ``[1, len(competitors) + 1]``.
    """
    mine = _metrics(subject)
    theirs = [_metrics(c) for c in competitors]

    medians: dict[str, float] = {}
    ranks: dict[str, int] = {}
    gaps: dict[str, float] = {}
    for metric in METRICS:
        others = [row[metric] for row in theirs]
        medians[metric] = median([mine[metric], *others])
        ranks[metric] = rank(mine[metric], others)
        gaps[metric] = gap(mine[metric], medians[metric])

    return Benchmark(
        competitor_count=len(competitors),
        medians=MetricTriple(**medians),
        rank=MetricTriple(**ranks),
        gaps=MetricTriple(**gaps),
    )
