"""Standings, player rankings and head-to-head endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request

from cueleague.api.audit import audit
from cueleague.api.deps import RepoDep
from cueleague.api.serializers import match_dict, standing_dict
from cueleague.auth.deps import CallerDep, OfficialDep
from cueleague.core.errors import NotFoundError
from cueleague.core.standings import head_to_head, recalculate_season_standings, win_percentage
from cueleague.db.repository import Repository

router = APIRouter(prefix="/api/standings", tags=["standings"])


async def _resolve_season_id(repo: Repository, season_id: str | None) -> str:
    """Use the given season, or the active one when omitted."""
    if season_id:
        if await repo.get_season(season_id) is None:
            raise NotFoundError.for_entity("Season", season_id)
        return season_id
    season = await repo.get_active_season()
    if season is None:
        raise NotFoundError("No active season found")
    return season.id


@router.get("")
async def get_standings(repo: RepoDep, _: CallerDep, season_id: str | None = None) -> dict:
    """Season table in rank order, defaulting to the active season."""
    season_id = await _resolve_season_id(repo, season_id)
    standings = await repo.get_standings_for_season(season_id)
    return {"data": [standing_dict(s) for s in standings]}


@router.get("/players")
async def get_player_rankings(
    repo: RepoDep, _: CallerDep, season_id: str | None = None, limit: int = 50
) -> dict:
    """Players ordered by wins, then run-outs."""
    season_id = await _resolve_season_id(repo, season_id)
    rows = await repo.get_player_rankings(season_id, limit=max(1, min(limit, 500)))
    return {
        "data": [
            {
                "rank": position,
                "player_id": s.player_id,
                "name": s.player.full_name,
                "handicap": s.player.handicap,
                "wins": s.wins,
                "losses": s.losses,
                "runouts": s.runouts,
                "win_percentage": win_percentage(s.wins, s.losses),
            }
            for position, s in enumerate(rows, start=1)
        ],
    }


@router.get("/head-to-head/{team_a_id}/{team_b_id}")
async def get_head_to_head(
    team_a_id: str,
    team_b_id: str,
    repo: RepoDep,
    _: CallerDep,
    season_id: str | None = None,
) -> dict:
    """Completed meetings between two teams and the series record."""
    for team_id in (team_a_id, team_b_id):
        if await repo.get_team(team_id) is None:
            raise NotFoundError.for_entity("Team", team_id)
    matches = await repo.get_head_to_head_matches(team_a_id, team_b_id, season_id)
    a_wins, b_wins = head_to_head(
        [
            {
                "home_team_id": m.home_team_id,
                "away_team_id": m.away_team_id,
                "home_score": m.home_score,
                "away_score": m.away_score,
            }
            for m in matches
        ],
        team_a_id,
        team_b_id,
    )
    return {
        "data": {
            "team_a_id": team_a_id,
            "team_b_id": team_b_id,
            "team_a_wins": a_wins,
            "team_b_wins": b_wins,
            "matches": [match_dict(m) for m in matches],
        },
    }


@router.get("/team/{team_id}")
async def get_team_standing(team_id: str, repo: RepoDep, _: CallerDep) -> dict:
    standing = await repo.get_standing_for_team(team_id)
    if standing is None:
        raise NotFoundError.for_entity("Standing for team", team_id)
    return {"data": standing_dict(standing)}


@router.post("/recalculate/{season_id}")
async def recalculate(
    season_id: str, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    """Rebuild the season's standings from its completed matches."""
    ranked = await recalculate_season_standings(repo, season_id)
    await audit(
        repo, request, caller, "RECALCULATE_STANDINGS", "Season", season_id, {"teams": len(ranked)}
    )
    standings = await repo.get_standings_for_season(season_id)
    return {"data": [standing_dict(s) for s in standings]}
