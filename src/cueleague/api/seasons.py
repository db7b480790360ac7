"""Season management API endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from cueleague.api.audit import audit
from cueleague.api.deps import RepoDep
from cueleague.auth.deps import AdminDep, CallerDep, OfficialDep
from cueleague.core import season as season_service
from cueleague.core.errors import NotFoundError
from cueleague.db.models import SeasonRow

router = APIRouter(prefix="/api/seasons", tags=["seasons"])


class CreateSeasonRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date
    playoff_date: date | None = None


class UpdateSeasonRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    playoff_date: date | None = None


def _season_dict(season: SeasonRow, team_count: int | None = None) -> dict:
    data = {
        "id": season.id,
        "name": season.name,
        "start_date": season.start_date.isoformat(),
        "end_date": season.end_date.isoformat(),
        "playoff_date": season.playoff_date.isoformat() if season.playoff_date else None,
        "is_active": season.is_active,
    }
    if team_count is not None:
        data["team_count"] = team_count
    return data


@router.get("")
async def list_seasons(repo: RepoDep, _: CallerDep, active: bool = False) -> dict:
    seasons = await repo.get_all_seasons(active_only=active)
    return {
        "data": [_season_dict(s, await repo.count_teams(s.id)) for s in seasons],
    }


@router.get("/active")
async def get_active_season(repo: RepoDep, _: CallerDep) -> dict:
    season = await repo.get_active_season()
    if season is None:
        raise NotFoundError("No active season found")
    return {"data": _season_dict(season, await repo.count_teams(season.id))}


@router.get("/{season_id}")
async def get_season(season_id: str, repo: RepoDep, _: CallerDep) -> dict:
    season = await repo.get_season(season_id)
    if season is None:
        raise NotFoundError.for_entity("Season", season_id)
    return {"data": _season_dict(season, await repo.count_teams(season.id))}


@router.get("/{season_id}/stats")
async def get_season_stats(season_id: str, repo: RepoDep, _: CallerDep) -> dict:
    """Counts, completion rate, week numbers and the top five players."""
    return {"data": await season_service.season_stats(repo, season_id, date.today())}


@router.post("", status_code=201)
async def create_season(
    body: CreateSeasonRequest, request: Request, repo: RepoDep, caller: AdminDep
) -> dict:
    """Create an inactive season. Use the activate endpoint to switch to it."""
    season_service.validate_season_dates(body.start_date, body.end_date, body.playoff_date)
    season = await repo.create_season(
        name=body.name,
        start_date=body.start_date,
        end_date=body.end_date,
        playoff_date=body.playoff_date,
    )
    await audit(repo, request, caller, "CREATE_SEASON", "Season", season.id, {"name": season.name})
    return {"data": _season_dict(season, 0)}


@router.put("/{season_id}")
async def update_season(
    season_id: str,
    body: UpdateSeasonRequest,
    request: Request,
    repo: RepoDep,
    caller: AdminDep,
) -> dict:
    season = await repo.get_season(season_id)
    if season is None:
        raise NotFoundError.for_entity("Season", season_id)

    changes = body.model_dump(exclude_unset=True)
    start = changes.get("start_date") or season.start_date
    end = changes.get("end_date") or season.end_date
    playoff = changes.get("playoff_date", season.playoff_date)
    season_service.validate_season_dates(start, end, playoff)

    for key, value in changes.items():
        if value is None and key != "playoff_date":
            continue
        setattr(season, key, value)
    await repo.session.flush()

    await audit(
        repo,
        request,
        caller,
        "UPDATE_SEASON",
        "Season",
        season.id,
        {k: str(v) if v is not None else None for k, v in changes.items()},
    )
    return {"data": _season_dict(season)}


@router.post("/{season_id}/activate")
async def activate_season(
    season_id: str, request: Request, repo: RepoDep, caller: AdminDep
) -> dict:
    """Make this the single active season."""
    season = await season_service.activate_season(repo, season_id)
    await audit(repo, request, caller, "ACTIVATE_SEASON", "Season", season.id)
    return {"data": _season_dict(season)}


@router.post("/{season_id}/deactivate")
async def deactivate_season(
    season_id: str, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    season = await season_service.deactivate_season(repo, season_id)
    await audit(repo, request, caller, "DEACTIVATE_SEASON", "Season", season.id)
    return {"data": _season_dict(season)}


@router.delete("/{season_id}")
async def delete_season(
    season_id: str, request: Request, repo: RepoDep, caller: AdminDep
) -> dict:
    """Delete an inactive season and everything it owns."""
    await season_service.delete_season(repo, season_id)
    await audit(repo, request, caller, "DELETE_SEASON", "Season", season_id)
    return {"data": {"id": season_id, "deleted": True}}
