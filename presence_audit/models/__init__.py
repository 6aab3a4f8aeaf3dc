"""Domain records and ORM models. Importing this populates Base.metadata."""

from presence_audit.models.profile import (
    CompetitorProfile,
    GeoPoint,
    OpeningHours,
    Photo,
    PlacePrediction,
    PlaceProfile,
    Review,
)
from presence_audit.models.analysis import (
    AnalysisResult,
    ApiUsage,
    AuditTier,
    Benchmark,
    CategoryScore,
    ComparisonRow,
    CompetitorCard,
    MetricTriple,
    NapCheck,
    Priority,
    PRIORITY_RANK,
    Recommendation,
    Verification,
)
from presence_audit.models.quota import QuotaUsage

__all__ = [
    "CompetitorProfile",
    "GeoPoint",
    "OpeningHours",
    "Photo",
    "PlacePrediction",
    "PlaceProfile",
    "Review",
    "AnalysisResult",
    "ApiUsage",
    "AuditTier",
    "Benchmark",
    "CategoryScore",
    "ComparisonRow",
    "CompetitorCard",
    "MetricTriple",
    "NapCheck",
    "Priority",
    "PRIORITY_RANK",
    "Recommendation",
    "Verification",
    "QuotaUsage",
]
