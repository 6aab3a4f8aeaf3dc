"""SQLAlchemy model for the day-scoped lookup counter."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from presence_audit.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuotaUsage(Base):
    """Billable lookups made by one caller on one local calendar day."""

    __tablename__ = "quota_usage"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    caller_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    day: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD
    count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<QuotaUsage caller={self.caller_key!r} day={self.day} count={self.count}>"
