"""Day-scoped budget for externally billable place lookups."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select

from presence_audit.database import get_session
from presence_audit.errors import RateLimitExceeded
from presence_audit.models.analysis import ApiUsage
from presence_audit.models.quota import QuotaUsage

logger = logging.getLogger(__name__)

DAILY_LIMIT_DEFAULT = 250


@dataclass(frozen=True)
class QuotaState:
    day: str
    count: int


class QuotaStore(ABC):
    """Key-value persistence for one :class:`QuotaState` per caller."""

    @abstractmethod
    def get(self, caller_key: str) -> Optional[QuotaState]:
        ...

    @abstractmethod
    def set(self, caller_key: str, state: QuotaState) -> None:
        ...


class InMemoryQuotaStore(QuotaStore):
    """Process-local store; state is lost when the process exits."""

    def __init__(self) -> None:
        self._states: dict[str, QuotaState] = {}

    def get(self, caller_key: str) -> Optional[QuotaState]:
        return self._states.get(caller_key)

    def set(self, caller_key: str, state: QuotaState) -> None:
        self._states[caller_key] = state


class SQLQuotaStore(QuotaStore):
    """Store backed by the ``quota_usage`` table.

    Requires :func:`presence_audit.database.init_db` to have run.
    """

    def get(self, caller_key: str) -> Optional[QuotaState]:
        with get_session() as session:
            row = session.scalar(
                select(QuotaUsage).where(QuotaUsage.caller_key == caller_key)
            )
            if row is None:
                return None
            return QuotaState(day=row.day, count=row.count)

    def set(self, caller_key: str, state: QuotaState) -> None:
        with get_session() as session:
            row = session.scalar(
                select(QuotaUsage).where(QuotaUsage.caller_key == caller_key)
            )
            if row is None:
                row = QuotaUsage(caller_key=caller_key, day=state.day, count=state.count)
                session.add(row)
            else:
                row.day = state.day
                row.count = state.count


def _local_today_key(now: Callable[[], datetime] = datetime.now) -> str:
    return now().strftime("%Y-%m-%d")


class QuotaGovernor:
    """Gate every billable lookup against a per-day call budget.

    Callers must :meth:`consume` *before* issuing the call. A consumed call
    that then fails is not refunded, so the counter can only over-count.
    The read-increment-write is not safe under concurrent use; one audit
    in flight per caller key is assumed.

    Usage::

        governor = QuotaGovernor(InMemoryQuotaStore())
        governor.consume(daily_limit=250)
        usage = governor.snapshot(daily_limit=250)
    """

    def __init__(
        self,
        store: QuotaStore,
        caller_key: str = "default",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._caller_key = caller_key
        self._clock = clock

    @property
    def caller_key(self) -> str:
        return self._caller_key

    def _current(self) -> QuotaState:
        today = _local_today_key(self._clock)
        state = self._store.get(self._caller_key)
        if state is None or state.day != today:
            return QuotaState(day=today, count=0)
        return state

    def consume(self, daily_limit: int = DAILY_LIMIT_DEFAULT) -> ApiUsage:
        """Count one lookup; raise once the day's count goes above *daily_limit*."""
        state = self._current()
        nxt = QuotaState(day=state.day, count=state.count + 1)
        self._store.set(self._caller_key, nxt)
        if nxt.count > daily_limit:
            logger.warning(
                "Quota exhausted for %s: %d/%d on %s",
                self._caller_key, nxt.count, daily_limit, nxt.day,
            )
            raise RateLimitExceeded(used=nxt.count, daily_limit=daily_limit)
        logger.debug("Quota %s: %d/%d", self._caller_key, nxt.count, daily_limit)
        return ApiUsage(used_today=nxt.count, daily_limit=daily_limit)

    def snapshot(self, daily_limit: int = DAILY_LIMIT_DEFAULT) -> ApiUsage:
        """Read-only view of today's usage."""
        return ApiUsage(used_today=self._current().count, daily_limit=daily_limit)
