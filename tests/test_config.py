"""Tests for application configuration."""

import pytest

from cueleague.config import DEFAULT_TOKEN_MAX_AGE, Settings


class TestSessionSecret:
    def test_development_generates_secret(self) -> None:
        settings = Settings(cueleague_env="development", session_secret_key="")
        assert len(settings.session_secret_key) >= 32
        assert not settings.is_production

    def test_production_requires_secret(self) -> None:
        with pytest.raises(ValueError, match="SESSION_SECRET_KEY"):
            Settings(cueleague_env="production", session_secret_key="")

    def test_production_with_secret(self) -> None:
        settings = Settings(cueleague_env="production", session_secret_key="prod-secret")
        assert settings.is_production
        assert settings.session_secret_key == "prod-secret"


class TestDefaults:
    def test_defaults(self, settings: Settings) -> None:
        assert settings.default_match_time == "7:00 PM"
        assert settings.token_max_age == DEFAULT_TOKEN_MAX_AGE
        assert settings.league_name == "Pool League"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LEAGUE_NAME", "Tuesday Night Eight-Ball")
        monkeypatch.setenv("DEFAULT_MATCH_TIME", "8:00 PM")
        settings = Settings()
        assert settings.league_name == "Tuesday Night Eight-Ball"
        assert settings.default_match_time == "8:00 PM"
