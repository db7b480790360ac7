"""FastAPI dependencies for authentication: bearer tokens and role gates.

Tokens are ``itsdangerous`` timed signatures over ``{user_id, role}``.
Issuing them is left to outside tooling (``scripts/seed.py`` prints one);
the API only verifies them.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from itsdangerous import BadSignature, URLSafeTimedSerializer
from pydantic import BaseModel

from cueleague.api.deps import RepoDep
from cueleague.config import Settings
from cueleague.core.errors import PermissionDeniedError
from cueleague.db.models import MatchRow, TeamRow
from cueleague.models.constants import OFFICIAL_ROLES, Role

logger = logging.getLogger(__name__)

TOKEN_SALT = "cueleague-token"


class Caller(BaseModel):
    """The authenticated user behind a request."""

    user_id: str
    role: Role
    email: str

    @property
    def is_official(self) -> bool:
        return self.role in OFFICIAL_ROLES


def _get_serializer(settings: Settings) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.session_secret_key, salt=TOKEN_SALT)


def issue_token(settings: Settings, user_id: str, role: str) -> str:
    """Sign a bearer token for *user_id*."""
    return _get_serializer(settings).dumps({"user_id": user_id, "role": str(role)})


def read_token(settings: Settings, token: str) -> dict | None:
    """Return the token payload, or None if the signature is bad or expired."""
    try:
        data = _get_serializer(settings).loads(token, max_age=settings.token_max_age)
    except BadSignature:
        logger.debug("Invalid or expired bearer token")
        return None
    if not isinstance(data, dict) or "user_id" not in data:
        return None
    return data


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"}
    )


async def get_caller(request: Request, repo: RepoDep) -> Caller:
    """Resolve the bearer token to an active user.

    The role is read from the user row, not the token, so a demotion takes
    effect on the next request.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Authentication required")

    settings: Settings = request.app.state.settings
    payload = read_token(settings, token.strip())
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    user = await repo.get_user(payload["user_id"])
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")

    return Caller(user_id=user.id, role=Role(user.role), email=user.email)


CallerDep = Annotated[Caller, Depends(get_caller)]


def require_roles(*roles: Role) -> Callable[[Caller], Awaitable[Caller]]:
    """Build a dependency that admits only callers holding one of *roles*."""
    allowed = frozenset(roles)

    async def _check(caller: CallerDep) -> Caller:
        if caller.role not in allowed:
            raise PermissionDeniedError("Insufficient permissions")
        return caller

    return _check


OfficialDep = Annotated[Caller, Depends(require_roles(Role.ADMIN, Role.LEAGUE_OFFICIAL))]
AdminDep = Annotated[Caller, Depends(require_roles(Role.ADMIN))]
ScorerDep = Annotated[
    Caller, Depends(require_roles(Role.ADMIN, Role.LEAGUE_OFFICIAL, Role.CAPTAIN))
]


def ensure_can_manage_team(caller: Caller, team: TeamRow) -> None:
    """Officials manage every team; captains only their own."""
    if caller.is_official:
        return
    if caller.role == Role.CAPTAIN and team.is_captained_by(caller.user_id):
        return
    raise PermissionDeniedError("You can only manage teams you captain")


def ensure_can_score_match(caller: Caller, match: MatchRow) -> None:
    """Officials score every match; captains only matches their team plays."""
    if caller.is_official:
        return
    if caller.role == Role.CAPTAIN and (
        match.home_team.is_captained_by(caller.user_id)
        or match.away_team.is_captained_by(caller.user_id)
    ):
        return
    raise PermissionDeniedError("You can only submit scores for your team's matches")


def client_ip(request: Request) -> str | None:
    """First hop of ``X-Forwarded-For``, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None
