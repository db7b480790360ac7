"""Audit trail for mutating endpoints."""

from __future__ import annotations

from fastapi import Request

from cueleague.auth.deps import Caller, client_ip
from cueleague.db.repository import Repository


async def audit(
    repo: Repository,
    request: Request,
    caller: Caller,
    action: str,
    entity: str,
    entity_id: str | None = None,
    details: dict | None = None,
) -> None:
    """Record *action* in the same transaction as the change it describes."""
    await repo.add_audit_log(
        user_id=caller.user_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        details=details,
        ip_address=client_ip(request),
    )
