"""
API-specific settings.

Transport knobs for the REST API (bind address, prefix, CORS, optional
API key). Values come from ``RANKBRND_*`` environment variables or a
``.env`` file, the same as :class:`~rankbrnd.core.settings.RankBrndSettings`.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RankBrndAPISettings(BaseSettings):
    """Settings for the rankbrnd REST API.

    Order of precedence (highest → lowest):
        1. Environment variables (``RANKBRND_API_PREFIX``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="RANKBRND_",
        env_file=".env",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8000, description="Bind port")
    debug: bool = Field(default=False, description="Expose exception detail in 500 responses")
    log_level: str = Field(default="INFO", description="Log level")

    # ── API ──────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api/v1", description="URL prefix for all endpoints")
    api_title: str = Field(default="rankbrnd API", description="OpenAPI title")
    api_version: str = Field(default="0.1.0", description="OpenAPI version string")

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/rankbrnd.db", description="Connection URL")
    data_dir: str = Field(default=".", description="Base directory for relative SQLite paths")

    # ── CORS ─────────────────────────────────────────────────────────────
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # ── Auth ─────────────────────────────────────────────────────────────
    api_key: str | None = Field(default=None, description="Optional API key for gating access")
