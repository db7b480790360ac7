"""Standings and ranking engine.

Two ways to keep team standings current:

- the incremental path (``record_match_score``) credits one win and one loss
  per completed match, extends both streaks, then re-ranks the season;
- the replay path (``recalculate_season_standings``) rebuilds every team's
  record from the season's completed matches in the order they were played.

Both run inside the caller's session, so standings and ranks are committed
together or not at all. Player stats follow individual game results and are
adjusted by difference, so resubmitting a game never double counts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from cueleague.core.errors import NotFoundError, ValidationError
from cueleague.db.models import MatchRow, StandingRow
from cueleague.db.repository import Repository
from cueleague.models.constants import MatchStatus
from cueleague.models.streak import Streak

logger = logging.getLogger(__name__)


@dataclass
class TeamRecord:
    """Win/loss record for one team, built up result by result."""

    team_id: str
    wins: int = 0
    losses: int = 0
    streak: Streak = field(default_factory=Streak)

    def apply(self, won: bool) -> None:
        if won:
            self.wins += 1
        else:
            self.losses += 1
        self.streak = self.streak.extend(won)


@dataclass
class PlayerStatsDelta:
    """Change applied to a player's season stats by one game result."""

    player_id: str
    season_id: str
    match_id: str
    game_number: int
    won: bool
    is_runout: bool
    wins_delta: int
    losses_delta: int
    runouts_delta: int
    wins: int
    losses: int
    runouts: int
    updated_existing: bool


def home_won(home_score: int, away_score: int) -> bool:
    """The home team wins iff its score is strictly greater."""
    return home_score > away_score


def replay_standings(team_ids: list[str], results: list[dict]) -> dict[str, TeamRecord]:
    """Rebuild team records from scratch.

    Args:
        team_ids: Teams to produce records for. Results involving other teams
            only count for the side that is listed.
        results: Completed matches in play order, as dicts with keys
            home_team_id, away_team_id, home_score, away_score.

    Returns:
        Mapping of team_id to its TeamRecord, one entry per team_id.
    """
    records = {tid: TeamRecord(team_id=tid) for tid in team_ids}
    for r in results:
        won = home_won(r["home_score"], r["away_score"])
        home = records.get(r["home_team_id"])
        away = records.get(r["away_team_id"])
        if home is not None:
            home.apply(won)
        if away is not None:
            away.apply(not won)
    return records


def rank_key(wins: int, losses: int, team_name: str, team_id: str) -> tuple:
    """Sort key for the standings table.

    Wins descending, losses ascending, then team name and id so that ties
    always come out in the same order.
    """
    return (-wins, losses, team_name.casefold(), team_id)


def win_percentage(wins: int, losses: int) -> str:
    """Format a winning percentage the way league tables print it (``.667``)."""
    total = wins + losses
    if total == 0:
        return ".000"
    text = f"{wins / total:.3f}"
    return text[1:] if text.startswith("0") else text


def head_to_head(results: list[dict], team_a: str, team_b: str) -> tuple[int, int]:
    """Compute head-to-head wins between two teams.

    Args:
        results: Completed match dicts with home_team_id, away_team_id,
            home_score, away_score.
        team_a: First team ID.
        team_b: Second team ID.

    Returns:
        Tuple of (team_a_wins, team_b_wins).
    """
    a_wins = 0
    b_wins = 0
    for r in results:
        if {r["home_team_id"], r["away_team_id"]} != {team_a, team_b}:
            continue
        winner = (
            r["home_team_id"]
            if home_won(r["home_score"], r["away_score"])
            else r["away_team_id"]
        )
        if winner == team_a:
            a_wins += 1
        else:
            b_wins += 1
    return a_wins, b_wins


def _result_dict(match: MatchRow) -> dict:
    return {
        "home_team_id": match.home_team_id,
        "away_team_id": match.away_team_id,
        "home_score": match.home_score,
        "away_score": match.away_score,
    }


def _validate_scores(home_score: int, away_score: int) -> None:
    if home_score < 0 or away_score < 0:
        raise ValidationError("Scores must be non-negative integers", field="score")
    if home_score == away_score:
        raise ValidationError(
            "Scores cannot be equal; a completed match needs a winner", field="score"
        )


async def _apply_team_result(
    repo: Repository, team_id: str, season_id: str, won: bool
) -> StandingRow:
    """Credit one result to a team's standing, creating the row if needed."""
    standing = await repo.get_standing_for_team(team_id)
    if standing is None:
        direction, length = Streak.start(won).to_columns()
        return await repo.create_standing(
            team_id=team_id,
            season_id=season_id,
            wins=1 if won else 0,
            losses=0 if won else 1,
            streak_direction=direction,
            streak_length=length,
        )

    streak = Streak.from_columns(standing.streak_direction, standing.streak_length).extend(won)
    if won:
        standing.wins += 1
    else:
        standing.losses += 1
    standing.streak_direction, standing.streak_length = streak.to_columns()
    await repo.session.flush()
    return standing


async def recalculate_rank(repo: Repository, season_id: str) -> list[StandingRow]:
    """Assign dense ranks 1..K to every standing in a season.

    Every row is rewritten, changed or not. Returns the standings in rank
    order.
    """
    standings = await repo.get_standings_for_season(season_id)
    ordered = sorted(
        standings,
        key=lambda s: rank_key(s.wins, s.losses, s.team.name, s.team_id),
    )
    for position, standing in enumerate(ordered, start=1):
        standing.rank = position
    await repo.session.flush()
    return ordered


async def record_match_score(
    repo: Repository,
    match_id: str,
    home_score: int,
    away_score: int,
) -> MatchRow:
    """Record a final score, update both standings and re-rank the season.

    The match becomes COMPLETED. A first score is applied incrementally. When
    the match already carries a final score, whatever its status, the old
    outcome is not stacked on top: the season is replayed from its completed
    matches instead.

    Raises:
        NotFoundError: The match does not exist.
        ValidationError: A score is negative or the scores are equal.
    """
    _validate_scores(home_score, away_score)

    match = await repo.get_match(match_id)
    if match is None:
        raise NotFoundError.for_entity("Match", match_id)

    rescoring = match.home_score is not None or match.away_score is not None
    match.home_score = home_score
    match.away_score = away_score
    match.status = MatchStatus.COMPLETED.value
    await repo.session.flush()

    if rescoring:
        logger.info(
            "match_rescored match=%s season=%s score=%d-%d replaying_season",
            match.id,
            match.season_id,
            home_score,
            away_score,
        )
        await recalculate_season_standings(repo, match.season_id)
    else:
        won = home_won(home_score, away_score)
        await _apply_team_result(repo, match.home_team_id, match.season_id, won)
        await _apply_team_result(repo, match.away_team_id, match.season_id, not won)
        await recalculate_rank(repo, match.season_id)
        logger.info(
            "match_scored match=%s season=%s score=%d-%d",
            match.id,
            match.season_id,
            home_score,
            away_score,
        )

    return match


async def set_match_status(repo: Repository, match_id: str, status: MatchStatus) -> MatchRow:
    """Move a match between SCHEDULED and IN_PROGRESS, or reopen a completed one.

    COMPLETED is reachable only through ``record_match_score``. Reopening a
    completed match clears its score and replays the season, so the result
    stops counting in the standings.

    Raises:
        NotFoundError: The match does not exist.
        ValidationError: *status* is COMPLETED.
    """
    status = MatchStatus(status)
    if status == MatchStatus.COMPLETED:
        raise ValidationError("Submit a final score to complete a match", field="status")

    match = await repo.get_match(match_id)
    if match is None:
        raise NotFoundError.for_entity("Match", match_id)

    reopening = match.status == MatchStatus.COMPLETED.value or match.home_score is not None
    match.status = status.value
    if reopening:
        match.home_score = None
        match.away_score = None
    await repo.session.flush()

    if reopening:
        logger.info(
            "match_reopened match=%s season=%s status=%s", match.id, match.season_id, status
        )
        await recalculate_season_standings(repo, match.season_id)
    return match


async def record_game_result(
    repo: Repository,
    match_id: str,
    player_id: str,
    game_number: int,
    won: bool,
    is_runout: bool = False,
) -> PlayerStatsDelta:
    """Upsert one individual game result and adjust the player's season stats.

    The result is keyed by (match, player, game_number). Resubmitting a key
    replaces the stored outcome and moves the player's stats by the
    difference between the old and new outcome.

    Raises:
        NotFoundError: The match or the player does not exist.
        ValidationError: ``game_number`` is below 1.
    """
    if game_number < 1:
        raise ValidationError("game_number must be a positive integer", field="game_number")
    is_runout = bool(is_runout)

    match = await repo.get_match(match_id)
    if match is None:
        raise NotFoundError.for_entity("Match", match_id)
    player = await repo.get_user(player_id)
    if player is None:
        raise NotFoundError.for_entity("Player", player_id)

    existing = await repo.get_match_result(match_id, player_id, game_number)
    old_win, old_loss, old_runout = 0, 0, 0
    if existing is not None:
        old_win = int(existing.won)
        old_loss = int(not existing.won)
        old_runout = int(existing.is_runout)
        existing.won = won
        existing.is_runout = is_runout
    else:
        await repo.create_match_result(match_id, player_id, game_number, won, is_runout)

    wins_delta = int(won) - old_win
    losses_delta = int(not won) - old_loss
    runouts_delta = int(is_runout) - old_runout

    stats = await repo.get_or_create_player_stats(player_id, match.season_id)
    stats.wins += wins_delta
    stats.losses += losses_delta
    stats.runouts += runouts_delta
    await repo.session.flush()

    logger.info(
        "game_result_recorded match=%s player=%s game=%d won=%s runout=%s updated=%s",
        match_id,
        player_id,
        game_number,
        won,
        is_runout,
        existing is not None,
    )

    return PlayerStatsDelta(
        player_id=player_id,
        season_id=match.season_id,
        match_id=match_id,
        game_number=game_number,
        won=won,
        is_runout=is_runout,
        wins_delta=wins_delta,
        losses_delta=losses_delta,
        runouts_delta=runouts_delta,
        wins=stats.wins,
        losses=stats.losses,
        runouts=stats.runouts,
        updated_existing=existing is not None,
    )


async def recalculate_season_standings(repo: Repository, season_id: str) -> list[StandingRow]:
    """Rebuild a season's standings from its completed matches, then re-rank.

    Ignores the incrementally maintained values entirely; used after bulk
    edits, re-scores and for recovery. Idempotent.

    Raises:
        NotFoundError: The season does not exist.
    """
    season = await repo.get_season(season_id)
    if season is None:
        raise NotFoundError.for_entity("Season", season_id)

    team_ids = await repo.get_team_ids_for_season(season_id)
    matches = await repo.get_completed_matches(season_id)
    records = replay_standings(team_ids, [_result_dict(m) for m in matches])

    for team_id in team_ids:
        record = records[team_id]
        direction, length = record.streak.to_columns()
        standing = await repo.get_standing_for_team(team_id)
        if standing is None:
            await repo.create_standing(
                team_id=team_id,
                season_id=season_id,
                wins=record.wins,
                losses=record.losses,
                streak_direction=direction,
                streak_length=length,
            )
            continue
        standing.wins = record.wins
        standing.losses = record.losses
        standing.streak_direction = direction
        standing.streak_length = length
    await repo.session.flush()

    ranked = await recalculate_rank(repo, season_id)
    logger.info(
        "standings_recalculated season=%s teams=%d matches=%d",
        season_id,
        len(team_ids),
        len(matches),
    )
    return ranked
