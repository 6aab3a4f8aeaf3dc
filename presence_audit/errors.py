"""Typed failures raised by the presence audit engine.

Every fatal error carries a machine-readable ``code`` so callers can branch
on it (for example, offering an upgrade path on ``RATE_LIMIT``) instead of
parsing messages.
"""

from __future__ import annotations

from typing import Optional


class PresenceAuditError(Exception):
    """Base exception for all audit failures."""

    code = "AUDIT_ERROR"

    def __init__(self, message: str = "", code: Optional[str] = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        if code:
            self.code = code

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": str(self)}


class ConfigurationError(PresenceAuditError):
    """A provider credential or setting is missing."""

    code = "MISSING_API_KEY"


class InvalidInputError(PresenceAuditError):
    """The caller supplied an empty or unsupported input value."""

    code = "INVALID_INPUT"


class NotFoundError(PresenceAuditError):
    """No business matched the query. Refine the name or location and retry."""

    code = "NOT_FOUND"


class InvalidReferenceError(PresenceAuditError):
    """The supplied deep link does not contain a usable place id."""

    code = "INVALID_URL"


class MissingLocationError(PresenceAuditError):
    """The business has no usable coordinates, so competitors cannot be searched."""

    code = "MISSING_LOCATION"


class RateLimitExceeded(PresenceAuditError):
    """The daily lookup budget has been used up."""

    code = "RATE_LIMIT"

    def __init__(self, used: int, daily_limit: int):
        super().__init__(
            f"API limit reached: {used} lookups today exceeds the daily limit of {daily_limit}"
        )
        self.used = used
        self.daily_limit = daily_limit


class ProviderUnavailable(PresenceAuditError):
    """A required lookup against the place data provider failed."""

    code = "PROVIDER_UNAVAILABLE"

    def __init__(self, message: str = "", status: Optional[str] = None):
        super().__init__(message)
        self.status = status
