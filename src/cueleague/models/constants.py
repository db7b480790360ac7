"""Shared constants for Cue League models.

Placed here so the API layer, the core services and the repository can all
import them without creating a layer violation.
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    ADMIN = "ADMIN"
    LEAGUE_OFFICIAL = "LEAGUE_OFFICIAL"
    CAPTAIN = "CAPTAIN"
    PLAYER = "PLAYER"


class MatchStatus(StrEnum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# Roles that manage the league as a whole and bypass captain checks.
OFFICIAL_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.LEAGUE_OFFICIAL})

# Body token required to wipe a season's schedule.
CLEAR_SCHEDULE_CONFIRMATION = "DELETE_ALL_MATCHES"

DAYS_PER_WEEK = 7

# Shape check only.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

DEFAULT_IMPORT_HANDICAP = 3
