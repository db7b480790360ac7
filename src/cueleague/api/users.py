"""User (player) API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from cueleague.api.audit import audit
from cueleague.api.deps import RepoDep
from cueleague.api.serializers import user_dict
from cueleague.auth.deps import AdminDep, CallerDep, OfficialDep
from cueleague.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from cueleague.db.models import UserRow
from cueleague.db.repository import Repository
from cueleague.models.constants import EMAIL_PATTERN, Role

router = APIRouter(prefix="/api/users", tags=["users"])


class CreateUserRequest(BaseModel):
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    phone: str | None = None
    handicap: int | None = Field(default=None, ge=1, le=9)
    role: Role = Role.PLAYER


class RoleRequest(BaseModel):
    role: Role


class UpdateUserRequest(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)
    phone: str | None = None
    handicap: int | None = Field(default=None, ge=1, le=9)
    role: Role | None = None


async def _require_user(repo: Repository, user_id: str) -> UserRow:
    user = await repo.get_user(user_id)
    if user is None:
        raise NotFoundError.for_entity("User", user_id)
    return user


@router.get("/me")
async def get_me(repo: RepoDep, caller: CallerDep) -> dict:
    user = await repo.get_user(caller.user_id)
    return {"data": user_dict(user)}


@router.get("")
async def list_users(repo: RepoDep, _: OfficialDep, active: bool = False) -> dict:
    users = await repo.list_users(active_only=active)
    return {"data": [user_dict(u) for u in users]}


@router.get("/{user_id}")
async def get_user(user_id: str, repo: RepoDep, _: CallerDep) -> dict:
    user = await repo.get_user(user_id)
    if user is None:
        raise NotFoundError.for_entity("User", user_id)
    return {"data": user_dict(user)}


@router.post("", status_code=201)
async def create_user(
    body: CreateUserRequest, request: Request, repo: RepoDep, caller: OfficialDep
) -> dict:
    """Register a user. Only admins may create other admins or officials."""
    if body.role in (Role.ADMIN, Role.LEAGUE_OFFICIAL) and caller.role != Role.ADMIN:
        raise PermissionDeniedError("Only admins can create officials")
    if await repo.get_user_by_email(body.email) is not None:
        raise ConflictError("Email already registered", field="email")
    user = await repo.create_user(
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role.value,
        phone=body.phone,
        handicap=body.handicap,
    )
    await audit(repo, request, caller, "CREATE_USER", "User", user.id, {"email": user.email})
    return {"data": user_dict(user)}


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    request: Request,
    repo: RepoDep,
    caller: CallerDep,
) -> dict:
    """Users edit their own profile; officials edit anyone; only admins change roles."""
    user = await repo.get_user(user_id)
    if user is None:
        raise NotFoundError.for_entity("User", user_id)
    if caller.user_id != user_id and not caller.is_official:
        raise PermissionDeniedError("You can only edit your own profile")

    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    if "role" in changes:
        if caller.role != Role.ADMIN:
            raise PermissionDeniedError("Only admins can change roles")
        changes["role"] = Role(changes["role"]).value
    for key, value in changes.items():
        setattr(user, key, value)
    await repo.session.flush()

    await audit(repo, request, caller, "UPDATE_USER", "User", user.id, changes)
    return {"data": user_dict(user)}


@router.post("/{user_id}/deactivate")
async def deactivate_user(
    user_id: str, request: Request, repo: RepoDep, caller: AdminDep
) -> dict:
    """Deactivate an account. Its tokens stop working on the next request."""
    user = await repo.get_user(user_id)
    if user is None:
        raise NotFoundError.for_entity("User", user_id)
    if user.id == caller.user_id:
        raise ValidationError("Cannot deactivate your own account")
    user.is_active = False
    await repo.session.flush()
    await audit(repo, request, caller, "DEACTIVATE_USER", "User", user.id)
    return {"data": user_dict(user)}


@router.post("/{user_id}/activate")
async def activate_user(user_id: str, request: Request, repo: RepoDep, caller: AdminDep) -> dict:
    user = await _require_user(repo, user_id)
    user.is_active = True
    await repo.session.flush()
    await audit(repo, request, caller, "ACTIVATE_USER", "User", user.id)
    return {"data": user_dict(user)}


@router.patch("/{user_id}/role")
async def change_role(
    user_id: str, body: RoleRequest, request: Request, repo: RepoDep, caller: AdminDep
) -> dict:
    """Set a user's role. Takes effect on their next request."""
    user = await _require_user(repo, user_id)
    previous = user.role
    user.role = body.role.value
    await repo.session.flush()
    await audit(
        repo,
        request,
        caller,
        "CHANGE_ROLE",
        "User",
        user.id,
        {"from": previous, "to": user.role},
    )
    return {"data": user_dict(user)}


@router.delete("/{user_id}")
async def delete_user(user_id: str, request: Request, repo: RepoDep, caller: AdminDep) -> dict:
    """Delete an account and its season stats; captained teams lose that captain."""
    user = await _require_user(repo, user_id)
    if user.id == caller.user_id:
        raise ValidationError("Cannot delete your own account")
    email = user.email
    await repo.delete_user(user)
    await audit(repo, request, caller, "DELETE_USER", "User", user_id, {"email": email})
    return {"data": {"id": user_id, "deleted": True}}
