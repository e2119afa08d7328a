"""
Audit Logs API endpoint: exposes the audit trail, most recent first.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from policyhub.audit import service
from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.middleware.auth_middleware import require_capability
from policyhub.store.base import RecordStore
from policyhub.store.dependencies import get_store

router = APIRouter()


@router.get("")
async def list_audit_logs(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    entity_id: Optional[uuid.UUID] = Query(None),
    action: Optional[str] = Query(None),
    store: RecordStore = Depends(get_store),
    actor: Actor = Depends(require_capability(Capability.REVIEW)),
):
    """Return audit logs ordered by most recent first."""
    logs = await service.list_audit_logs(store, skip, limit, entity_id, action)
    return [
        {
            "id": str(log["id"]),
            "user_id": str(log["user_id"]) if log.get("user_id") else None,
            "action": log["action"],
            "entity_type": log.get("entity_type"),
            "entity_id": str(log["entity_id"]) if log.get("entity_id") else None,
            "details": log.get("details"),
            "created_at": log["created_at"].isoformat() if log.get("created_at") else None,
        }
        for log in logs
    ]
