"""Match API endpoints: listing, scheduling edits, score and game-result entry."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from cueleague.api.audit import audit
from cueleague.api.deps import RepoDep
from cueleague.api.serializers import match_dict
from cueleague.auth.deps import CallerDep, OfficialDep, ScorerDep, ensure_can_score_match
from cueleague.core.errors import NotFoundError, ValidationError
from cueleague.core.standings import record_game_result, record_match_score, set_match_status
from cueleague.db.models import MatchRow
from cueleague.db.repository import Repository
from cueleague.models.constants import MatchStatus

router = APIRouter(prefix="/api/matches", tags=["matches"])


class CreateMatchRequest(BaseModel):
    season_id: str
    home_team_id: str
    away_team_id: str
    match_date: date = Field(alias="date")
    week: int = Field(ge=1)
    time: str = "7:00 PM"
    venue_id: str | None = None


class UpdateMatchRequest(BaseModel):
    match_date: date | None = Field(default=None, alias="date")
    time: str | None = None
    venue_id: str | None = None
    status: MatchStatus | None = None
    week: int | None = Field(default=None, ge=1)


class ScoreRequest(BaseModel):
    home_score: int
    away_score: int


class GameResultRequest(BaseModel):
    player_id: str
    game_number: int
    won: bool
    is_runout: bool = False


async def _require_match(repo: Repository, match_id: str) -> MatchRow:
    match = await repo.get_match(match_id)
    if match is None:
        raise NotFoundError.for_entity("Match", match_id)
    return match


@router.get("")
async def list_matches(
    repo: RepoDep,
    _: CallerDep,
    season_id: str | None = None,
    team_id: str | None = None,
    status: MatchStatus | None = None,
    week: int | None = None,
    upcoming: bool = False,
    limit: int = 50,
) -> dict:
    """List matches by date. ``upcoming`` keeps unplayed matches from today on."""
    matches = await repo.list_matches(
        season_id=season_id,
        team_id=team_id,
        status=status.value if status else None,
        week=week,
        upcoming_from=date.today() if upcoming else None,
        limit=max(1, min(limit, 500)),
    )
    return {"data": [match_dict(m) for m in matches]}


@router.get("/{match_id}")
async def get_match(match_id: str, repo: RepoDep, _: CallerDep) -> dict:
    """Get a match with its individual game results."""
    match = await _require_match(repo, match_id)
    return {"data": match_dict(match, include_results=True)}


@router.post("", status_code=201)
async def create_match(
    body: CreateMatchRequest, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    """Schedule a single match by hand."""
    if body.home_team_id == body.away_team_id:
        raise ValidationError("Home and away teams must be different", field="away_team_id")
    if await repo.get_season(body.season_id) is None:
        raise NotFoundError.for_entity("Season", body.season_id)
    for team_id in (body.home_team_id, body.away_team_id):
        team = await repo.get_team(team_id)
        if team is None:
            raise NotFoundError.for_entity("Team", team_id)
        if team.season_id != body.season_id:
            raise ValidationError(f"Team {team_id} is not in this season", field="season_id")
    if body.venue_id is not None and await repo.get_venue(body.venue_id) is None:
        raise NotFoundError.for_entity("Venue", body.venue_id)

    match = await repo.create_match(
        season_id=body.season_id,
        home_team_id=body.home_team_id,
        away_team_id=body.away_team_id,
        match_date=body.match_date,
        week=body.week,
        time=body.time,
        venue_id=body.venue_id,
    )
    await audit(repo, request, caller, "CREATE_MATCH", "Match", match.id)
    match = await _require_match(repo, match.id)
    return {"data": match_dict(match)}


@router.put("/{match_id}")
async def update_match(
    match_id: str,
    body: UpdateMatchRequest,
    request: Request,
    repo: RepoDep,
    caller: OfficialDep,
) -> dict:
    """Reschedule a match or change its status.

    Scores are not edited here; use the score endpoint so standings follow.
    Setting COMPLETED is rejected, and reopening a completed match clears its
    score and replays the season standings.
    """
    match = await _require_match(repo, match_id)
    changes = body.model_dump(exclude_unset=True)

    if "venue_id" in changes and changes["venue_id"] is not None:
        if await repo.get_venue(changes["venue_id"]) is None:
            raise NotFoundError.for_entity("Venue", changes["venue_id"])
        match.venue_id = changes["venue_id"]
    if changes.get("match_date") is not None:
        match.match_date = changes["match_date"]
    if changes.get("time") is not None:
        match.time = changes["time"]
    if changes.get("week") is not None:
        match.week = changes["week"]
    await repo.session.flush()
    if changes.get("status") is not None:
        await set_match_status(repo, match_id, changes["status"])

    await audit(
        repo,
        request,
        caller,
        "UPDATE_MATCH",
        "Match",
        match.id,
        {k: str(v) if v is not None else None for k, v in changes.items()},
    )
    match = await _require_match(repo, match_id)
    return {"data": match_dict(match)}


@router.delete("/{match_id}")
async def delete_match(
    match_id: str, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    match = await _require_match(repo, match_id)
    await repo.delete_match(match)
    await audit(repo, request, caller, "DELETE_MATCH", "Match", match_id)
    return {"data": {"id": match_id, "deleted": True}}


@router.patch("/{match_id}/score")
async def submit_score(
    match_id: str,
    body: ScoreRequest,
    request: Request,
    repo: RepoDep,
    caller: ScorerDep,
) -> dict:
    """Record the final score. Standings and ranks update in the same transaction."""
    match = await _require_match(repo, match_id)
    ensure_can_score_match(caller, match)

    await record_match_score(repo, match_id, body.home_score, body.away_score)
    await audit(
        repo,
        request,
        caller,
        "SUBMIT_SCORE",
        "Match",
        match_id,
        {"home_score": body.home_score, "away_score": body.away_score},
    )
    match = await _require_match(repo, match_id)
    return {"data": match_dict(match)}


@router.post("/{match_id}/results")
async def submit_game_result(
    match_id: str,
    body: GameResultRequest,
    request: Request,
    repo: RepoDep,
    caller: ScorerDep,
) -> dict:
    """Record one individual game. Resubmitting the same game replaces it."""
    match = await _require_match(repo, match_id)
    ensure_can_score_match(caller, match)

    delta = await record_game_result(
        repo,
        match_id,
        body.player_id,
        body.game_number,
        body.won,
        body.is_runout,
    )
    await audit(
        repo,
        request,
        caller,
        "SUBMIT_GAME_RESULT",
        "MatchResult",
        match_id,
        body.model_dump(),
    )
    return {
        "data": {
            "player_id": delta.player_id,
            "season_id": delta.season_id,
            "match_id": delta.match_id,
            "game_number": delta.game_number,
            "won": delta.won,
            "is_runout": delta.is_runout,
            "updated_existing": delta.updated_existing,
            "delta": {
                "wins": delta.wins_delta,
                "losses": delta.losses_delta,
                "runouts": delta.runouts_delta,
            },
            "totals": {
                "wins": delta.wins,
                "losses": delta.losses,
                "runouts": delta.runouts,
            },
        },
    }
