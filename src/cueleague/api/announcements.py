"""League announcement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from cueleague.api.audit import audit
from cueleague.api.deps import RepoDep
from cueleague.api.serializers import announcement_dict
from cueleague.auth.deps import Caller, CallerDep, OfficialDep
from cueleague.core.errors import NotFoundError, PermissionDeniedError
from cueleague.db.models import AnnouncementRow
from cueleague.db.repository import Repository
from cueleague.models.constants import Role

router = APIRouter(prefix="/api/announcements", tags=["announcements"])


class CreateAnnouncementRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=5000)
    is_urgent: bool = False


class UpdateAnnouncementRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, min_length=1, max_length=5000)
    is_urgent: bool | None = None
    is_active: bool | None = None


async def _require_announcement(repo: Repository, announcement_id: str) -> AnnouncementRow:
    announcement = await repo.get_announcement(announcement_id)
    if announcement is None:
        raise NotFoundError.for_entity("Announcement", announcement_id)
    return announcement


def _ensure_can_edit(caller: Caller, announcement: AnnouncementRow) -> None:
    """Officials edit their own announcements; admins edit all of them."""
    if caller.role == Role.ADMIN or announcement.creator_id == caller.user_id:
        return
    raise PermissionDeniedError("You can only edit your own announcements")


@router.get("")
async def list_announcements(
    repo: RepoDep, _: CallerDep, active: bool = True, page: int = 1, limit: int = 20
) -> dict:
    """Urgent announcements first, then newest."""
    page = max(page, 1)
    limit = max(1, min(limit, 100))
    rows, total = await repo.list_announcements(active_only=active, page=page, limit=limit)
    return {
        "data": [announcement_dict(a) for a in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


@router.get("/{announcement_id}")
async def get_announcement(announcement_id: str, repo: RepoDep, _: CallerDep) -> dict:
    announcement = await _require_announcement(repo, announcement_id)
    return {"data": announcement_dict(announcement)}


@router.post("", status_code=201)
async def create_announcement(
    body: CreateAnnouncementRequest, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    row = await repo.create_announcement(
        title=body.title,
        content=body.content,
        is_urgent=body.is_urgent,
        creator_id=caller.user_id,
    )
    await audit(
        repo,
        request,
        caller,
        "ANNOUNCEMENT_CREATED",
        "Announcement",
        row.id,
        {"title": body.title, "is_urgent": body.is_urgent},
    )
    announcement = await _require_announcement(repo, row.id)
    return {"data": announcement_dict(announcement)}


@router.patch("/{announcement_id}")
async def update_announcement(
    announcement_id: str,
    body: UpdateAnnouncementRequest,
    request: Request,
    repo: RepoDep,
    caller: OfficialDep,
) -> dict:
    announcement = await _require_announcement(repo, announcement_id)
    _ensure_can_edit(caller, announcement)

    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    for key, value in changes.items():
        setattr(announcement, key, value)
    await repo.session.flush()

    await audit(
        repo, request, caller, "ANNOUNCEMENT_UPDATED", "Announcement", announcement_id, changes
    )
    announcement = await _require_announcement(repo, announcement_id)
    return {"data": announcement_dict(announcement)}


@router.delete("/{announcement_id}")
async def delete_announcement(
    announcement_id: str, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    announcement = await _require_announcement(repo, announcement_id)
    _ensure_can_edit(caller, announcement)
    await repo.delete_announcement(announcement)
    await audit(repo, request, caller, "ANNOUNCEMENT_DELETED", "Announcement", announcement_id)
    return {"data": {"id": announcement_id, "deleted": True}}
