"""Team and roster API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from cueleague.api.audit import audit
from cueleague.api.deps import RepoDep
from cueleague.api.serializers import standing_dict, user_dict
from cueleague.auth.deps import (
    CallerDep,
    OfficialDep,
    ScorerDep,
    ensure_can_manage_team,
)
from cueleague.core import teams as team_service
from cueleague.core.errors import ConflictError, NotFoundError
from cueleague.db.models import TeamRow
from cueleague.db.repository import Repository

router = APIRouter(prefix="/api/teams", tags=["teams"])


class CreateTeamRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    season_id: str
    captain_id: str | None = None
    co_captain_id: str | None = None
    logo: str | None = None


class UpdateTeamRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    captain_id: str | None = None
    co_captain_id: str | None = None
    logo: str | None = None


class AddMemberRequest(BaseModel):
    player_id: str


def _team_dict(team: TeamRow) -> dict:
    return {
        "id": team.id,
        "name": team.name,
        "season_id": team.season_id,
        "logo": team.logo,
        "captain_id": team.captain_id,
        "co_captain_id": team.co_captain_id,
        "member_count": len(team.members),
        "standing": standing_dict(team.standing) if team.standing else None,
    }


async def _require_team(repo: Repository, team_id: str) -> TeamRow:
    team = await repo.get_team(team_id)
    if team is None:
        raise NotFoundError.for_entity("Team", team_id)
    return team


@router.get("")
async def list_teams(repo: RepoDep, _: CallerDep, season_id: str | None = None) -> dict:
    """List teams for a season, or every team when no season is given."""
    if season_id:
        teams = await repo.get_teams_for_season(season_id)
    else:
        teams = await repo.get_all_teams()
    return {"data": [_team_dict(t) for t in teams]}


@router.get("/{team_id}")
async def get_team(team_id: str, repo: RepoDep, _: CallerDep) -> dict:
    """Get a single team with its roster."""
    team = await _require_team(repo, team_id)
    data = _team_dict(team)
    data["members"] = [user_dict(m) for m in team.members]
    return {"data": data}


@router.post("", status_code=201)
async def create_team(
    body: CreateTeamRequest, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    team = await team_service.create_team(
        repo,
        season_id=body.season_id,
        name=body.name,
        captain_id=body.captain_id,
        co_captain_id=body.co_captain_id,
        logo=body.logo,
    )
    await audit(repo, request, caller, "CREATE_TEAM", "Team", team.id, {"name": team.name})
    team = await _require_team(repo, team.id)
    return {"data": _team_dict(team)}


@router.put("/{team_id}")
async def update_team(
    team_id: str,
    body: UpdateTeamRequest,
    request: Request,
    repo: RepoDep,
    caller: ScorerDep,
) -> dict:
    """Officials edit any team; captains only their own."""
    team = await _require_team(repo, team_id)
    ensure_can_manage_team(caller, team)
    await team_service.update_team(
        repo,
        team,
        name=body.name,
        logo=body.logo,
        captain_id=body.captain_id,
        co_captain_id=body.co_captain_id,
    )
    await audit(
        repo,
        request,
        caller,
        "UPDATE_TEAM",
        "Team",
        team.id,
        body.model_dump(exclude_unset=True),
    )
    team = await _require_team(repo, team_id)
    return {"data": _team_dict(team)}


@router.post("/{team_id}/members", status_code=201)
async def add_member(
    team_id: str,
    body: AddMemberRequest,
    request: Request,
    repo: RepoDep,
    caller: ScorerDep,
) -> dict:
    team = await _require_team(repo, team_id)
    ensure_can_manage_team(caller, team)
    player = await team_service.add_member(repo, team, body.player_id)
    await audit(
        repo, request, caller, "ADD_TEAM_MEMBER", "Team", team.id, {"player_id": player.id}
    )
    return {"data": user_dict(player)}


@router.delete("/{team_id}/members/{player_id}")
async def remove_member(
    team_id: str,
    player_id: str,
    request: Request,
    repo: RepoDep,
    caller: ScorerDep,
) -> dict:
    team = await _require_team(repo, team_id)
    ensure_can_manage_team(caller, team)
    player = await team_service.remove_member(repo, team, player_id)
    await audit(
        repo, request, caller, "REMOVE_TEAM_MEMBER", "Team", team.id, {"player_id": player.id}
    )
    return {"data": user_dict(player)}


@router.delete("/{team_id}")
async def delete_team(
    team_id: str, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    """Delete a team that has no matches yet; members become free agents."""
    team = await _require_team(repo, team_id)
    if await repo.list_matches(team_id=team_id, limit=1):
        raise ConflictError(
            "Cannot delete a team with scheduled matches; clear the schedule first"
        )
    name = team.name
    await repo.delete_team(team)
    await audit(repo, request, caller, "DELETE_TEAM", "Team", team_id, {"name": name})
    return {"data": {"id": team_id, "deleted": True}}
