"""Admin endpoints: schedules, dashboard, audit log, user import and league export."""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from cueleague.api.audit import audit
from cueleague.api.deps import RepoDep, SettingsDep
from cueleague.auth.deps import AdminDep, OfficialDep
from cueleague.core import season as season_service
from cueleague.core.errors import ValidationError
from cueleague.core.export import export_league
from cueleague.core.users import import_users
from cueleague.models.constants import CLEAR_SCHEDULE_CONFIRMATION, MatchStatus

router = APIRouter(prefix="/api/admin", tags=["admin"])


class GenerateScheduleRequest(BaseModel):
    season_id: str
    start_date: date
    weeks_count: int | None = None
    match_time: str | None = None
    team_ids: list[str] | None = None
    venue_ids: list[str] | None = None
    rotate_venues: bool = False


class ClearScheduleRequest(BaseModel):
    confirm: str = ""


class ImportUserEntry(BaseModel):
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    handicap: int | str | None = None
    team_name: str | None = None


class ImportUsersRequest(BaseModel):
    users: list[ImportUserEntry] = []


@router.post("/generate-schedule", status_code=201)
async def generate_schedule(
    body: GenerateScheduleRequest,
    request: Request,
    repo: RepoDep,
    settings: SettingsDep,
    caller: OfficialDep,
) -> dict:
    """Generate a round-robin schedule for a season.

    Existing matches are kept, so generating twice doubles the schedule;
    clear it first to regenerate.
    """
    summary = await season_service.generate_schedule(
        repo,
        season_id=body.season_id,
        start_date=body.start_date,
        weeks_count=body.weeks_count,
        match_time=body.match_time or settings.default_match_time,
        team_ids=body.team_ids,
        venue_ids=body.venue_ids,
        rotate_venues=body.rotate_venues,
    )
    await audit(
        repo,
        request,
        caller,
        "GENERATE_SCHEDULE",
        "Season",
        body.season_id,
        {
            "matches_created": summary.matches_created,
            "weeks": summary.weeks_generated,
            "start_date": body.start_date.isoformat(),
        },
    )
    return {
        "data": {
            "season_id": summary.season_id,
            "matches_created": summary.matches_created,
            "weeks_generated": summary.weeks_generated,
            "cycle_weeks": summary.cycle_weeks,
        },
    }


@router.delete("/clear-schedule/{season_id}")
async def clear_schedule(
    season_id: str,
    body: ClearScheduleRequest,
    request: Request,
    repo: RepoDep,
    caller: AdminDep,
) -> dict:
    """Delete every match of a season. Requires ``{"confirm": "DELETE_ALL_MATCHES"}``."""
    if body.confirm != CLEAR_SCHEDULE_CONFIRMATION:
        raise ValidationError(
            f'Confirmation required. Send {{"confirm": "{CLEAR_SCHEDULE_CONFIRMATION}"}} '
            "to proceed.",
            field="confirm",
        )
    deleted = await season_service.clear_schedule(repo, season_id)
    await audit(
        repo, request, caller, "CLEAR_SCHEDULE", "Season", season_id, {"matches_deleted": deleted}
    )
    return {"data": {"season_id": season_id, "matches_deleted": deleted}}


@router.get("/dashboard")
async def dashboard(repo: RepoDep, _: OfficialDep) -> dict:
    """User counts plus progress of the active season and the latest activity."""
    active = await repo.get_active_season()
    total_users = await repo.count_users()
    active_users = await repo.count_users(active_only=True)

    total_teams = total_matches = completed = upcoming = 0
    if active is not None:
        total_teams = await repo.count_teams(active.id)
        total_matches = await repo.count_matches(active.id)
        completed = await repo.count_matches(active.id, status=MatchStatus.COMPLETED.value)
        upcoming = await repo.count_matches(
            active.id, status=MatchStatus.SCHEDULED.value, from_date=date.today()
        )

    recent, _total = await repo.get_audit_logs(page=1, limit=10)
    return {
        "data": {
            "stats": {
                "total_users": total_users,
                "active_users": active_users,
                "inactive_users": total_users - active_users,
                "total_teams": total_teams,
                "total_matches": total_matches,
                "completed_matches": completed,
                "upcoming_matches": upcoming,
                "match_completion_rate": season_service.completion_rate(
                    completed, total_matches
                ),
            },
            "active_season": (
                {
                    "id": active.id,
                    "name": active.name,
                    "start_date": active.start_date.isoformat(),
                    "end_date": active.end_date.isoformat(),
                    "playoff_date": (
                        active.playoff_date.isoformat() if active.playoff_date else None
                    ),
                }
                if active is not None
                else None
            ),
            "recent_activity": [
                {
                    "id": log.id,
                    "action": log.action,
                    "entity": log.entity,
                    "user": log.user.full_name if log.user else "System",
                    "created_at": log.created_at.isoformat(),
                }
                for log in recent
            ],
        },
    }


@router.get("/audit-logs")
async def audit_logs(
    repo: RepoDep,
    _: AdminDep,
    page: int = 1,
    limit: int = 50,
    user_id: str | None = None,
    action: str | None = None,
    entity: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> dict:
    """Paginated audit entries, newest first."""
    page = max(page, 1)
    limit = max(1, min(limit, 500))
    logs, total = await repo.get_audit_logs(
        page=page,
        limit=limit,
        user_id=user_id,
        action=action,
        entity=entity,
        start=start_date,
        end=end_date,
    )
    return {
        "data": [
            {
                "id": log.id,
                "user_id": log.user_id,
                "user": log.user.full_name if log.user else None,
                "action": log.action,
                "entity": log.entity,
                "entity_id": log.entity_id,
                "details": log.details,
                "ip_address": log.ip_address,
                "created_at": log.created_at.isoformat(),
            }
            for log in logs
        ],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


@router.post("/import-users")
async def import_users_endpoint(
    body: ImportUsersRequest, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    """Create players in bulk. Reports created, skipped and rejected entries."""
    report = await import_users(repo, [entry.model_dump() for entry in body.users])
    await audit(repo, request, caller, "BULK_IMPORT_USERS", "User", None, report.counts())
    return {
        "data": {
            "created": report.created,
            "skipped": report.skipped,
            "errors": report.errors,
        },
    }


@router.get("/export")
async def export(request: Request, repo: RepoDep, caller: OfficialDep) -> dict:
    """Every league table as JSON, for offline backup."""
    snapshot = await export_league(repo)
    await audit(
        repo,
        request,
        caller,
        "EXPORT_CREATED",
        "League",
        None,
        {section: len(rows) for section, rows in snapshot["data"].items()},
    )
    return {"data": snapshot}
