"""
Audit trail: one row per mutation, written in the caller's unit of work.
A failed audit write fails the operation it describes.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder

from policyhub.core.logging import get_logger
from policyhub.store.base import AUDIT_LOGS, Record, RecordStore

logger = get_logger(__name__)

# ── Actions ──
POLICY_CREATED = "POLICY_CREATED"
POLICY_UPDATED = "POLICY_UPDATED"
POLICY_DELETED = "POLICY_DELETED"
STATUS_CHANGED = "STATUS_CHANGED"
POLICY_PUBLISHED = "POLICY_PUBLISHED"
POLICY_ARCHIVED = "POLICY_ARCHIVED"
POLICY_CLONED = "POLICY_CLONED"
REVISION_CREATED = "REVISION_CREATED"
REVISION_REVIEWED = "REVISION_REVIEWED"
FORM_CREATED = "FORM_CREATED"
FORM_UPDATED = "FORM_UPDATED"
FORM_DELETED = "FORM_DELETED"
FORM_STATUS_CHANGED = "FORM_STATUS_CHANGED"
COMMENT_ADDED = "COMMENT_ADDED"
COMMENT_UPDATED = "COMMENT_UPDATED"
COMMENT_DELETED = "COMMENT_DELETED"


async def record_audit(
    store: RecordStore,
    user_id: Optional[uuid.UUID],
    action: str,
    entity_type: str,
    entity_id: Optional[uuid.UUID],
    details: Optional[dict[str, Any]] = None,
) -> Record:
    entry = await store.insert(AUDIT_LOGS, {
        "id": uuid.uuid4(),
        "user_id": user_id,
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "details": jsonable_encoder(details) if details else None,
        "created_at": datetime.now(timezone.utc),
    })
    logger.debug(
        "Audit entry recorded",
        extra={"event": "audit", "operation": action, "actor_id": str(user_id), "entity_id": str(entity_id)},
    )
    return entry


async def list_audit_logs(
    store: RecordStore,
    skip: int = 0,
    limit: int = 50,
    entity_id: Optional[uuid.UUID] = None,
    action: Optional[str] = None,
) -> list[Record]:
    """Most recent first."""
    where: dict[str, Any] = {}
    if entity_id is not None:
        where["entity_id"] = entity_id
    if action:
        where["action"] = action
    return await store.select(AUDIT_LOGS, where, order_by=("-created_at",), offset=skip, limit=limit)
