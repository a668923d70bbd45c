"""
Centralized settings for rankbrnd.

Manifesto:
    One validated, cached settings object replaces scattered
    ``os.environ`` lookups. Worker limits, retry timings, cron secrets,
    and DataForSEO credentials all resolve here.

All fields can be set via ``RANKBRND_*`` environment variables (e.g.
``RANKBRND_CRON_SECRET=...``) or a ``.env`` file.

Tags:
    rankbrnd, configuration, settings, pydantic, caching

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RankBrndSettings(BaseSettings):
    """Process-wide configuration for workers, clients, and the database."""

    model_config = SettingsConfigDict(
        env_prefix="RANKBRND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/rankbrnd.db")
    data_dir: str = Field(default=".")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or console")

    # ── Worker secrets ───────────────────────────────────────────
    cron_secret: str | None = Field(default=None, description="x-cron-secret for the publishing worker")
    rank_tracking_cron_secret: str | None = Field(
        default=None, description="x-cron-secret for the rank-tracking worker"
    )

    # ── DataForSEO ───────────────────────────────────────────────
    dataforseo_username: str | None = Field(default=None)
    dataforseo_password: str | None = Field(default=None)
    dataforseo_api_base_url: str = Field(default="https://api.dataforseo.com")
    dataforseo_api_version: str = Field(default="v3")
    dataforseo_timeout_ms: int = Field(default=60000)

    # ── Publishing worker ────────────────────────────────────────
    publish_max_items_per_run: int = Field(default=20)
    publish_max_processing_time_ms: int = Field(default=120000)

    # ── Rank-tracking worker ─────────────────────────────────────
    rank_max_keywords_per_run: int = Field(default=100)
    rank_max_processing_time_ms: int = Field(default=300000)

    # ── Retry ────────────────────────────────────────────────────
    retry_base_delay_ms: int = Field(default=1000)
    retry_max_delay_ms: int = Field(default=60000)
    retry_max_retries: int = Field(default=3)

    @property
    def dataforseo_configured(self) -> bool:
        return bool(self.dataforseo_username and self.dataforseo_password)

    @property
    def json_logs(self) -> bool:
        return self.log_format.lower() == "json"


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: RankBrndSettings | None = None


def get_settings(*, _force_reload: bool = False) -> RankBrndSettings:
    """Return the cached settings, building them on first use."""
    global _settings_cache
    if _settings_cache is None or _force_reload:
        _settings_cache = RankBrndSettings()
    return _settings_cache


def clear_settings_cache() -> None:
    """Drop the cached settings (tests)."""
    global _settings_cache
    _settings_cache = None


__all__ = ["RankBrndSettings", "get_settings", "clear_settings_cache"]
