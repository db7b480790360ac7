"""Typed errors raised by the core services.

Route handlers never translate these one by one: ``cueleague.main`` installs
a single exception handler that maps ``status_code`` and ``code`` onto the
JSON error body.
"""

from __future__ import annotations


class LeagueError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    code = "league_error"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        body: dict = {"error": self.message, "code": self.code}
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(LeagueError):
    """Malformed or missing input (negative score, same home and away team...)."""

    status_code = 400
    code = "validation_error"


class NotFoundError(LeagueError):
    status_code = 404
    code = "not_found"

    @classmethod
    def for_entity(cls, entity: str, entity_id: str) -> NotFoundError:
        return cls(f"{entity} not found: {entity_id}")


class InsufficientTeamsError(LeagueError):
    """Scheduling needs at least two teams."""

    status_code = 400
    code = "insufficient_teams"

    def __init__(self, team_count: int) -> None:
        super().__init__(f"Need at least 2 teams to generate schedule (got {team_count})")
        self.team_count = team_count


class ConflictError(LeagueError):
    status_code = 409
    code = "conflict"


class PermissionDeniedError(LeagueError):
    status_code = 403
    code = "permission_denied"
