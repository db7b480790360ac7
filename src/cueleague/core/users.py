"""Bulk user import."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from cueleague.core.errors import LeagueError, ValidationError
from cueleague.core.teams import add_member
from cueleague.db.repository import Repository
from cueleague.models.constants import DEFAULT_IMPORT_HANDICAP, EMAIL_PATTERN

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(EMAIL_PATTERN)


@dataclass
class ImportReport:
    created: list[dict] = field(default_factory=list)
    skipped: list[dict] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "created": len(self.created),
            "skipped": len(self.skipped),
            "errors": len(self.errors),
        }


def _parse_handicap(value: object) -> int:
    if value is None or value == "":
        return DEFAULT_IMPORT_HANDICAP
    try:
        handicap = int(value)
    except (TypeError, ValueError):
        return DEFAULT_IMPORT_HANDICAP
    if not 1 <= handicap <= 9:
        raise ValidationError("Handicap must be between 1 and 9", field="handicap")
    return handicap


async def import_users(repo: Repository, entries: list[dict]) -> ImportReport:
    """Create PLAYER accounts from a list of dicts.

    Each entry needs email, first_name and last_name; handicap defaults to 3
    and team_name, when it matches a team (active season first, then any),
    puts the player on that roster. Existing emails are skipped. A bad entry
    is reported and the rest are still imported.

    Raises:
        ValidationError: *entries* is empty.
    """
    if not entries:
        raise ValidationError("Users array is required", field="users")

    active = await repo.get_active_season()
    report = ImportReport()

    for entry in entries:
        email = (entry.get("email") or "").strip()
        first_name = (entry.get("first_name") or "").strip()
        last_name = (entry.get("last_name") or "").strip()

        if not (email and first_name and last_name):
            report.errors.append({"email": email or None, "error": "Missing required fields"})
            continue
        if not _EMAIL_RE.match(email):
            report.errors.append({"email": email, "error": "Invalid email address"})
            continue
        if await repo.get_user_by_email(email) is not None:
            report.skipped.append({"email": email, "reason": "Already exists"})
            continue

        try:
            handicap = _parse_handicap(entry.get("handicap"))
            team = None
            team_name = (entry.get("team_name") or "").strip()
            if team_name:
                if active is not None:
                    team = await repo.find_team_by_name(team_name, season_id=active.id)
                if team is None:
                    team = await repo.find_team_by_name(team_name)

            user = await repo.create_user(email, first_name, last_name, handicap=handicap)
            if team is not None:
                await add_member(repo, team, user.id)
        except LeagueError as exc:
            report.errors.append({"email": email, "error": exc.message})
            continue

        report.created.append(
            {
                "id": user.id,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "team_id": user.team_id,
            }
        )

    logger.info(
        "users_imported created=%d skipped=%d errors=%d",
        len(report.created),
        len(report.skipped),
        len(report.errors),
    )
    return report
