"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

import secrets

from pydantic import model_validator
from pydantic_settings import BaseSettings

# Seven days, matching the session lifetime of the web client.
DEFAULT_TOKEN_MAX_AGE = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """Cue League application configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Database
    database_url: str = "sqlite+aiosqlite:///cueleague.db"

    # Environment
    cueleague_env: str = "development"

    # Auth
    session_secret_key: str = ""
    token_max_age: int = DEFAULT_TOKEN_MAX_AGE

    # Scheduling
    default_match_time: str = "7:00 PM"

    # League branding (served by /api/config)
    league_name: str = "Pool League"
    league_short_name: str = "League"
    league_description: str = "Pool/Billiards League Management"
    league_contact_email: str | None = None
    league_contact_phone: str | None = None
    league_location: str | None = None
    league_website: str | None = None
    league_rules_url: str | None = None

    # Seed
    admin_email: str = "admin@poolleague.com"

    # Logging
    cueleague_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _ensure_session_secret(self) -> Settings:
        """Auto-generate session secret in dev; reject missing secret in production."""
        if not self.session_secret_key:
            if self.cueleague_env == "production":
                msg = (
                    "SESSION_SECRET_KEY must be set in production. "
                    "Generate one with: python -c "
                    '"import secrets; print(secrets.token_urlsafe(32))"'
                )
                raise ValueError(msg)
            self.session_secret_key = secrets.token_urlsafe(32)
        return self

    @property
    def is_production(self) -> bool:
        return self.cueleague_env == "production"
