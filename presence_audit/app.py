"""Application wiring: configuration, database and the audit engine."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from presence_audit.modules.local_presence.auditor import AuditSettings, PresenceAuditor
from presence_audit.modules.local_presence.quota import (
    DAILY_LIMIT_DEFAULT,
    InMemoryQuotaStore,
    QuotaGovernor,
    QuotaStore,
    SQLQuotaStore,
)

logger = logging.getLogger(__name__)


class PresenceAuditApp:
    """Central application class that builds a ready-to-use auditor.

    Usage::

        app = PresenceAuditApp()
        app.initialize()
        auditor = app.build_auditor()
        status = app.get_status()
    """

    def __init__(
        self,
        config_path: str = "config/settings.yaml",
        env_path: str = ".env",
    ):
        self._config_path = config_path
        self._env_path = env_path
        self.config: dict[str, Any] = {}
        self._initialized = False
        self._persistent_quota = True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load environment and configuration, then initialise the database."""
        if self._initialized:
            return

        env_file = Path(self._env_path)
        if env_file.exists():
            load_dotenv(env_file)
            logger.info("Loaded environment from %s", self._env_path)

        self.config = self._load_config()

        db_cfg = self.config.get("database", {})
        db_url = os.getenv("DATABASE_URL") or db_cfg.get("url")
        try:
            from presence_audit.database import init_db
            init_db(database_url=db_url, echo=bool(db_cfg.get("echo", False)))
        except Exception as exc:
            # The quota counter falls back to process memory.
            logger.error("Database unavailable, quota will not persist: %s", exc)
            self._persistent_quota = False

        self._initialized = True
        logger.info("PresenceAuditApp initialised.")

    def _load_config(self) -> dict[str, Any]:
        """Load the YAML configuration file."""
        config_file = Path(self._config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s, using defaults.", self._config_path)
            return {}
        with open(config_file, "r", encoding="utf-8") as fh:
            config = yaml.safe_load(fh) or {}
        logger.info("Configuration loaded from %s", self._config_path)
        return config

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Call initialize() before using the application.")

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    @property
    def daily_limit(self) -> int:
        return int(self.config.get("quota", {}).get("daily_limit", DAILY_LIMIT_DEFAULT))

    def audit_settings(self) -> AuditSettings:
        places = self.config.get("places", {})
        defaults = AuditSettings()
        return AuditSettings(
            daily_limit=self.daily_limit,
            prediction_limit=int(places.get("prediction_limit", defaults.prediction_limit)),
            standard_radius_meters=int(
                places.get("standard_radius_meters", defaults.standard_radius_meters)
            ),
            standard_competitor_limit=int(
                places.get("standard_competitor_limit", defaults.standard_competitor_limit)
            ),
            pro_competitor_limit=int(
                places.get("pro_competitor_limit", defaults.pro_competitor_limit)
            ),
        )

    def build_governor(self, store: Optional[QuotaStore] = None) -> QuotaGovernor:
        self._ensure_initialized()
        if store is None:
            store = SQLQuotaStore() if self._persistent_quota else InMemoryQuotaStore()
        caller_key = self.config.get("quota", {}).get("caller_key", "default")
        return QuotaGovernor(store, caller_key=caller_key)

    def build_provider(self):
        """Google Places adapter; raises ``ConfigurationError`` without an API key."""
        from presence_audit.integrations.places_provider import GooglePlacesProvider

        places = self.config.get("places", {})
        kwargs: dict[str, Any] = {"timeout": float(places.get("timeout", 10))}
        if places.get("base_url"):
            kwargs["base_url"] = places["base_url"]
        return GooglePlacesProvider(api_key=os.getenv("GOOGLE_PLACES_API_KEY"), **kwargs)

    def build_fetcher(self):
        from presence_audit.integrations.website_fetcher import (
            DEFAULT_PROXIES,
            MIN_HTML_LENGTH,
            ProxyTextFetcher,
        )

        cfg = self.config.get("website_fetch", {})
        return ProxyTextFetcher(
            proxies=cfg.get("proxies") or DEFAULT_PROXIES,
            timeout=float(cfg.get("timeout", 8)),
            min_length=int(cfg.get("min_length", MIN_HTML_LENGTH)),
        )

    def build_auditor(self, with_provider: bool = True) -> PresenceAuditor:
        """Wire provider, quota governor and website fetcher into an auditor.

        ``with_provider=False`` builds an offline auditor for the self-audit tier.
        """
        self._ensure_initialized()
        provider = self.build_provider() if with_provider else None
        return PresenceAuditor(
            provider=provider,
            governor=self.build_governor(),
            fetcher=self.build_fetcher() if with_provider else None,
            settings=self.audit_settings(),
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> dict[str, dict[str, Any]]:
        """Return health status of database, configuration and credentials."""
        self._ensure_initialized()
        status: dict[str, dict[str, Any]] = {}

        try:
            from sqlalchemy import func, select

            from presence_audit.database import get_session
            from presence_audit.models.quota import QuotaUsage

            with get_session() as session:
                callers = session.scalar(select(func.count()).select_from(QuotaUsage))
            status["database"] = {"status": "ok", "details": f"{callers} quota counters"}
        except Exception as exc:
            status["database"] = {"status": "error", "details": str(exc)}

        status["config"] = {
            "status": "ok" if self.config else "warning",
            "details": f"{len(self.config)} sections loaded" if self.config else "no config",
        }

        has_key = bool(os.getenv("GOOGLE_PLACES_API_KEY"))
        status["places_api"] = {
            "status": "ok" if has_key else "warning",
            "details": "GOOGLE_PLACES_API_KEY set" if has_key else "GOOGLE_PLACES_API_KEY missing",
        }

        usage = self.build_governor().snapshot(self.daily_limit)
        status["quota"] = {
            "status": "ok" if usage.used_today < usage.daily_limit else "warning",
            "details": f"{usage.used_today}/{usage.daily_limit} lookups today",
        }
        return status
