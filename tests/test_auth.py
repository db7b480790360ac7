"""Tests for bearer tokens and permission helpers."""

from types import SimpleNamespace

import pytest

from cueleague.auth.deps import (
    Caller,
    ensure_can_manage_team,
    ensure_can_score_match,
    issue_token,
    read_token,
)
from cueleague.config import Settings
from cueleague.core.errors import PermissionDeniedError
from cueleague.db.models import TeamRow
from cueleague.models.constants import Role


def _caller(role: Role, user_id: str = "u-1") -> Caller:
    return Caller(user_id=user_id, role=role, email=f"{user_id}@x.co")


class TestTokens:
    def test_round_trip(self, settings: Settings):
        token = issue_token(settings, "u-1", Role.CAPTAIN)
        assert read_token(settings, token) == {"user_id": "u-1", "role": "CAPTAIN"}

    def test_wrong_secret(self, settings: Settings):
        token = issue_token(settings, "u-1", Role.ADMIN)
        other = Settings(session_secret_key="another-secret")
        assert read_token(other, token) is None

    def test_tampered(self, settings: Settings):
        token = issue_token(settings, "u-1", Role.ADMIN)
        assert read_token(settings, token[:-2] + "xx") is None

    def test_expired(self, settings: Settings):
        token = issue_token(settings, "u-1", Role.ADMIN)
        expired = settings.model_copy(update={"token_max_age": -1})
        assert read_token(expired, token) is None


class TestPermissions:
    def test_officials_manage_any_team(self):
        team = TeamRow(id="t-1", season_id="s", name="A", captain_id="someone")
        ensure_can_manage_team(_caller(Role.ADMIN), team)
        ensure_can_manage_team(_caller(Role.LEAGUE_OFFICIAL), team)

    def test_captain_manages_own_team_only(self):
        own = TeamRow(id="t-1", season_id="s", name="A", co_captain_id="u-1")
        other = TeamRow(id="t-2", season_id="s", name="B", captain_id="u-9")
        ensure_can_manage_team(_caller(Role.CAPTAIN), own)
        with pytest.raises(PermissionDeniedError):
            ensure_can_manage_team(_caller(Role.CAPTAIN), other)

    def test_player_cannot_manage(self):
        team = TeamRow(id="t-1", season_id="s", name="A", captain_id="u-1")
        with pytest.raises(PermissionDeniedError):
            ensure_can_manage_team(_caller(Role.PLAYER), team)

    def test_captain_scores_own_matches(self):
        home = TeamRow(id="t-1", season_id="s", name="A", captain_id="u-1")
        away = TeamRow(id="t-2", season_id="s", name="B", captain_id="u-9")
        match = SimpleNamespace(home_team=home, away_team=away)
        ensure_can_score_match(_caller(Role.CAPTAIN), match)
        with pytest.raises(PermissionDeniedError):
            ensure_can_score_match(_caller(Role.CAPTAIN, user_id="u-5"), match)
