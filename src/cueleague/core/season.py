"""Season lifecycle: activation, deletion, schedule generation and statistics.

At most one season is active at a time. ``activate_season`` deactivates the
current one and activates the target in the same session, so both writes
commit together.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date

from cueleague.core.errors import (
    ConflictError,
    InsufficientTeamsError,
    NotFoundError,
    ValidationError,
)
from cueleague.core.scheduler import cycle_length, generate_round_robin
from cueleague.db.models import SeasonRow
from cueleague.db.repository import Repository
from cueleague.models.constants import DAYS_PER_WEEK, MatchStatus

logger = logging.getLogger(__name__)


@dataclass
class ScheduleSummary:
    season_id: str
    matches_created: int
    weeks_generated: int
    cycle_weeks: int


def validate_season_dates(
    start_date: date, end_date: date, playoff_date: date | None = None
) -> None:
    if end_date <= start_date:
        raise ValidationError("End date must be after start date", field="end_date")
    if playoff_date is not None and playoff_date < start_date:
        raise ValidationError("Playoff date must not precede start date", field="playoff_date")


async def _require_season(repo: Repository, season_id: str) -> SeasonRow:
    season = await repo.get_season(season_id)
    if season is None:
        raise NotFoundError.for_entity("Season", season_id)
    return season


async def activate_season(repo: Repository, season_id: str) -> SeasonRow:
    """Make *season_id* the only active season."""
    season = await _require_season(repo, season_id)
    previous = await repo.get_active_season()
    await repo.deactivate_all_seasons()
    season.is_active = True
    await repo.session.flush()
    logger.info(
        "season_activated season=%s previous=%s",
        season.id,
        previous.id if previous is not None else None,
    )
    return season


async def deactivate_season(repo: Repository, season_id: str) -> SeasonRow:
    season = await _require_season(repo, season_id)
    season.is_active = False
    await repo.session.flush()
    logger.info("season_deactivated season=%s", season.id)
    return season


async def delete_season(repo: Repository, season_id: str) -> None:
    """Delete an inactive season with its teams, matches, standings and stats.

    Raises:
        NotFoundError: The season does not exist.
        ConflictError: The season is the active one.
    """
    season = await _require_season(repo, season_id)
    if season.is_active:
        raise ConflictError("Cannot delete active season. Activate another season first.")
    team_ids = await repo.get_team_ids_for_season(season_id)
    await repo.detach_team_members(team_ids)
    await repo.delete_season(season)
    logger.info("season_deleted season=%s teams=%d", season_id, len(team_ids))


async def generate_schedule(
    repo: Repository,
    season_id: str,
    start_date: date,
    weeks_count: int | None = None,
    match_time: str = "7:00 PM",
    team_ids: list[str] | None = None,
    venue_ids: list[str] | None = None,
    rotate_venues: bool = False,
) -> ScheduleSummary:
    """Generate and store a round-robin schedule for a season.

    Args:
        repo: Database repository.
        season_id: Season to schedule.
        start_date: Date of week 1.
        weeks_count: Weeks to generate; ``None`` or more than one cycle means
            one full cycle.
        match_time: Display time for every match.
        team_ids: Teams in seeding order. Defaults to all of the season's
            teams, ordered by name.
        venue_ids: Venues in rotation order. Defaults to all active venues.
        rotate_venues: Rotate venues across matches instead of using the
            first one for all.

    Returns:
        ScheduleSummary with the number of matches created.

    Raises:
        NotFoundError: The season or a venue does not exist.
        InsufficientTeamsError: Fewer than two teams. Nothing is written.
        ValidationError: A team does not belong to the season.

    Existing matches are left alone; use ``clear_schedule`` first to
    regenerate.
    """
    await _require_season(repo, season_id)

    season_team_ids = await repo.get_team_ids_for_season(season_id)
    if team_ids is None:
        team_ids = season_team_ids
    if len(team_ids) < 2:
        raise InsufficientTeamsError(len(team_ids))
    known = set(season_team_ids)
    foreign = [tid for tid in team_ids if tid not in known]
    if foreign:
        raise ValidationError(
            f"Teams not in season {season_id}: {', '.join(foreign)}", field="team_ids"
        )

    if venue_ids is None:
        venue_ids = [v.id for v in await repo.get_venues(active_only=True)]
    else:
        for venue_id in venue_ids:
            if await repo.get_venue(venue_id) is None:
                raise NotFoundError.for_entity("Venue", venue_id)

    fixtures = generate_round_robin(
        team_ids,
        start_date=start_date,
        weeks_count=weeks_count,
        match_time=match_time,
        venue_ids=venue_ids,
        rotate_venues=rotate_venues,
    )
    await repo.create_scheduled_matches(season_id, fixtures)

    summary = ScheduleSummary(
        season_id=season_id,
        matches_created=len(fixtures),
        weeks_generated=len({f.week for f in fixtures}),
        cycle_weeks=cycle_length(len(team_ids)),
    )
    if weeks_count is not None and weeks_count > summary.cycle_weeks:
        logger.warning(
            "schedule_weeks_capped season=%s requested=%d cycle=%d",
            season_id,
            weeks_count,
            summary.cycle_weeks,
        )
    logger.info(
        "schedule_generated season=%s teams=%d weeks=%d matches=%d",
        season_id,
        len(team_ids),
        summary.weeks_generated,
        summary.matches_created,
    )
    return summary


async def clear_schedule(repo: Repository, season_id: str) -> int:
    """Delete every match (and game result) of a season. Returns the count.

    Standings are not touched; run ``recalculate_season_standings`` if
    scored matches were removed.
    """
    await _require_season(repo, season_id)
    deleted = await repo.delete_matches_for_season(season_id)
    logger.info("schedule_cleared season=%s matches=%d", season_id, deleted)
    return deleted


def season_week_numbers(season: SeasonRow, today: date) -> tuple[int, int]:
    """Return (total_weeks, current_week) for a season as of *today*.

    The current week is capped at the total and is 0 before the season starts.
    """
    total_weeks = math.ceil((season.end_date - season.start_date).days / DAYS_PER_WEEK)
    current_week = math.ceil((today - season.start_date).days / DAYS_PER_WEEK)
    return total_weeks, max(0, min(current_week, total_weeks))


def completion_rate(completed: int, total: int) -> float:
    """Percentage of completed matches, one decimal place."""
    if total == 0:
        return 0.0
    return round(completed / total * 100, 1)


async def season_stats(repo: Repository, season_id: str, today: date) -> dict:
    """Counts and progress for one season, plus its top five players by wins."""
    season = await _require_season(repo, season_id)

    team_count = await repo.count_teams(season_id)
    match_count = await repo.count_matches(season_id)
    completed = await repo.count_matches(season_id, status=MatchStatus.COMPLETED.value)
    player_count = await repo.count_player_stats(season_id)
    top_players = await repo.get_player_rankings(season_id, limit=5)
    total_weeks, current_week = season_week_numbers(season, today)

    return {
        "season": {
            "id": season.id,
            "name": season.name,
            "start_date": season.start_date.isoformat(),
            "end_date": season.end_date.isoformat(),
            "playoff_date": season.playoff_date.isoformat() if season.playoff_date else None,
            "is_active": season.is_active,
        },
        "stats": {
            "total_teams": team_count,
            "total_matches": match_count,
            "completed_matches": completed,
            "remaining_matches": match_count - completed,
            "completion_rate": completion_rate(completed, match_count),
            "total_players": player_count,
            "total_weeks": total_weeks,
            "current_week": current_week,
        },
        "top_players": [
            {
                "player_id": s.player_id,
                "name": s.player.full_name,
                "wins": s.wins,
                "losses": s.losses,
                "runouts": s.runouts,
            }
            for s in top_players
        ],
    }
