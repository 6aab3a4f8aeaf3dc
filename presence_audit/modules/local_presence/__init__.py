"""Local presence audit engine.

Scores a business profile in three tiers (owner self-audit, live Standard
audit, competitor-scanning Pro audit), benchmarks it against nearby
competitors, and turns the gaps into prioritized recommendations.
"""

from presence_audit.modules.local_presence.auditor import (
    AuditSettings,
    PresenceAuditor,
    ProAuditRequest,
    StandardAuditRequest,
)
from presence_audit.modules.local_presence.checklist import SelfAuditChecklist, SelfAuditInputs
from presence_audit.modules.local_presence.competitor_locator import CompetitorLocator
from presence_audit.modules.local_presence.quota import (
    InMemoryQuotaStore,
    QuotaGovernor,
    SQLQuotaStore,
)
from presence_audit.modules.local_presence.scoring import Scorer, ScoringContext

__all__ = [
    "AuditSettings",
    "PresenceAuditor",
    "ProAuditRequest",
    "StandardAuditRequest",
    "SelfAuditChecklist",
    "SelfAuditInputs",
    "CompetitorLocator",
    "InMemoryQuotaStore",
    "QuotaGovernor",
    "SQLQuotaStore",
    "Scorer",
    "ScoringContext",
]
