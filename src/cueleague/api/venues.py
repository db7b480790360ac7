"""Venue API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from cueleague.api.audit import audit
from cueleague.api.deps import RepoDep
from cueleague.api.serializers import venue_dict
from cueleague.auth.deps import CallerDep, OfficialDep
from cueleague.core.errors import NotFoundError

router = APIRouter(prefix="/api/venues", tags=["venues"])


class CreateVenueRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    address: str | None = None
    city: str | None = None
    phone: str | None = None


class UpdateVenueRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    address: str | None = None
    city: str | None = None
    phone: str | None = None
    is_active: bool | None = None


@router.get("")
async def list_venues(repo: RepoDep, _: CallerDep, active: bool = False) -> dict:
    venues = await repo.get_venues(active_only=active)
    return {"data": [venue_dict(v) for v in venues]}


@router.get("/{venue_id}")
async def get_venue(venue_id: str, repo: RepoDep, _: CallerDep) -> dict:
    venue = await repo.get_venue(venue_id)
    if venue is None:
        raise NotFoundError.for_entity("Venue", venue_id)
    return {"data": venue_dict(venue)}


@router.post("", status_code=201)
async def create_venue(
    body: CreateVenueRequest, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    venue = await repo.create_venue(
        name=body.name, address=body.address, city=body.city, phone=body.phone
    )
    await audit(repo, request, caller, "CREATE_VENUE", "Venue", venue.id, {"name": venue.name})
    return {"data": venue_dict(venue)}


@router.put("/{venue_id}")
async def update_venue(
    venue_id: str,
    body: UpdateVenueRequest,
    request: Request,
    repo: RepoDep,
    caller: OfficialDep,
) -> dict:
    venue = await repo.get_venue(venue_id)
    if venue is None:
        raise NotFoundError.for_entity("Venue", venue_id)
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    for key, value in changes.items():
        setattr(venue, key, value)
    await repo.session.flush()
    await audit(repo, request, caller, "UPDATE_VENUE", "Venue", venue.id, changes)
    return {"data": venue_dict(venue)}


@router.delete("/{venue_id}")
async def delete_venue(
    venue_id: str, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    """Delete a venue. Matches played there keep their date but lose the venue."""
    venue = await repo.get_venue(venue_id)
    if venue is None:
        raise NotFoundError.for_entity("Venue", venue_id)
    name = venue.name
    await repo.delete_venue(venue)
    await audit(repo, request, caller, "DELETE_VENUE", "Venue", venue_id, {"name": name})
    return {"data": {"id": venue_id, "deleted": True}}
