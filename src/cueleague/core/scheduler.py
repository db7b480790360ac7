"""Round-robin schedule generation.

Generates a weekly fixture list where every team plays every other team once
per cycle. Uses the circle method (polygon scheduling).

Terminology:
  - **week**: one round of the circle; a set of simultaneous matches where
    no team appears twice. With 4 teams a week has 2 matches.
  - **cycle**: every team plays every other team once. With N teams (N even)
    that takes N-1 weeks; with N odd a bye slot is added, so N weeks.

Generation stops after one cycle even when more weeks are requested.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from cueleague.core.errors import InsufficientTeamsError, ValidationError
from cueleague.models.constants import DAYS_PER_WEEK

# Placeholder occupying the spare slot when the team count is odd.
# Never a valid team id, so it cannot collide with a real team.
_BYE: None = None


@dataclass
class ScheduledMatch:
    """A single generated fixture, not yet persisted."""

    week: int
    matchup_index: int
    match_date: date
    time: str
    home_team_id: str
    away_team_id: str
    venue_id: str | None = None


def cycle_length(team_count: int) -> int:
    """Number of weeks in one full round-robin cycle for *team_count* teams."""
    slots = team_count + (team_count % 2)
    return max(slots - 1, 0)


def generate_round_robin(
    team_ids: list[str],
    start_date: date,
    weeks_count: int | None = None,
    match_time: str = "7:00 PM",
    venue_ids: list[str] | None = None,
    rotate_venues: bool = False,
) -> list[ScheduledMatch]:
    """Generate a weekly round-robin schedule using the circle method.

    Slot 0 stays fixed. Each week slot ``i`` hosts slot ``M-1-i`` for
    ``i < M/2``, then every other slot moves one place clockwise. A pairing
    that lands on the bye slot produces no match.

    Args:
        team_ids: Team IDs in seeding order. At least two are required.
        start_date: Date of week 1. Each later week is 7 days after the last.
        weeks_count: Weeks to generate. ``None`` means one full cycle; values
            beyond one cycle are capped at the cycle length.
        match_time: Display time stored on every match.
        venue_ids: Venues in rotation order. May be empty.
        rotate_venues: When true, matches take venues in turn from one counter
            shared by the whole run. Otherwise every match gets the first
            venue (or none).

    Returns:
        ScheduledMatch objects sorted by week, then matchup_index.

    Raises:
        InsufficientTeamsError: Fewer than two teams were supplied.
        ValidationError: ``weeks_count`` is below 1 or a team appears twice.
    """
    if len(team_ids) < 2:
        raise InsufficientTeamsError(len(team_ids))
    if len(set(team_ids)) != len(team_ids):
        raise ValidationError("Team list contains duplicates", field="team_ids")
    if weeks_count is not None and weeks_count < 1:
        raise ValidationError("weeks_count must be a positive integer", field="weeks_count")

    slots: list[str | None] = list(team_ids)
    if len(slots) % 2 != 0:
        slots.append(_BYE)
    m = len(slots)

    rounds = m - 1
    if weeks_count is not None:
        rounds = min(rounds, weeks_count)

    venues = list(venue_ids or [])
    venue_counter = 0

    matches: list[ScheduledMatch] = []
    for round_idx in range(rounds):
        week = round_idx + 1
        match_date = start_date + timedelta(days=DAYS_PER_WEEK * round_idx)
        match_idx = 0

        for i in range(m // 2):
            home_id = slots[i]
            away_id = slots[m - 1 - i]
            if home_id is _BYE or away_id is _BYE:
                continue

            if not venues:
                venue_id = None
            elif rotate_venues:
                venue_id = venues[venue_counter % len(venues)]
                venue_counter += 1
            else:
                venue_id = venues[0]

            matches.append(
                ScheduledMatch(
                    week=week,
                    matchup_index=match_idx,
                    match_date=match_date,
                    time=match_time,
                    home_team_id=home_id,
                    away_team_id=away_id,
                    venue_id=venue_id,
                )
            )
            match_idx += 1

        # Rotate: keep slot 0, move the last slot to position 1
        slots = [slots[0], slots[-1], *slots[1:-1]]

    return matches
