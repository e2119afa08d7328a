"""
Policy discussion: anyone who can see a policy may comment on it.
Authors edit their own comments; authors and super-admins delete them.
"""
import uuid
from datetime import datetime, timezone
from typing import List

from policyhub.audit import service as audit
from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.core.errors import NotFound, NotPermitted, ValidationError
from policyhub.core.logging import get_logger
from policyhub.notifications.service import notify_comment
from policyhub.policy.service import get_policy
from policyhub.store.base import COMMENTS, Record, RecordStore

logger = get_logger(__name__)


def _clean(text: str) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError("Comment text cannot be blank")
    return cleaned


def _with_edited_flag(comment: Record) -> Record:
    comment["edited"] = comment.get("updated_at") != comment.get("created_at")
    return comment


def _is_author(actor: Actor, comment: Record) -> bool:
    return str(comment.get("user_id")) == str(actor.id)


async def _get_comment(store: RecordStore, comment_id: uuid.UUID) -> Record:
    comment = await store.get(COMMENTS, comment_id)
    if comment is None:
        raise NotFound(f"Comment {comment_id} not found")
    return comment


async def add_comment(store: RecordStore, policy_id: uuid.UUID, text: str, actor: Actor) -> Record:
    if not actor.can(Capability.VIEW):
        raise NotPermitted(f"Role '{actor.role.value}' cannot comment on policies")
    policy = await get_policy(store, policy_id)
    text = _clean(text)

    now = datetime.now(timezone.utc)
    async with store.savepoint():
        comment = await store.insert(COMMENTS, {
            "id": uuid.uuid4(),
            "policy_id": policy_id,
            "user_id": actor.id,
            "comment": text,
            "created_at": now,
            "updated_at": now,
        })
        await audit.record_audit(
            store, actor.id, audit.COMMENT_ADDED, "policy", policy_id,
            details={"comment_id": comment["id"]},
        )
    logger.info(
        "Comment added",
        extra={"event": "comment_added", "policy_id": str(policy_id), "actor_id": str(actor.id)},
    )

    await notify_comment(store, policy, comment, actor)
    return _with_edited_flag(comment)


async def list_comments(store: RecordStore, policy_id: uuid.UUID) -> List[Record]:
    """Oldest first, so the thread reads top to bottom."""
    await get_policy(store, policy_id)
    rows = await store.select(COMMENTS, {"policy_id": policy_id}, order_by=("created_at",))
    return [_with_edited_flag(row) for row in rows]


async def update_comment(store: RecordStore, comment_id: uuid.UUID, text: str, actor: Actor) -> Record:
    comment = await _get_comment(store, comment_id)
    if not _is_author(actor, comment):
        raise NotPermitted("Only the comment's author can edit it")
    text = _clean(text)

    async with store.savepoint():
        updated = await store.update(
            COMMENTS, comment_id, {"comment": text, "updated_at": datetime.now(timezone.utc)},
        )
        await audit.record_audit(
            store, actor.id, audit.COMMENT_UPDATED, "policy", comment["policy_id"],
            details={"comment_id": comment_id},
        )
    return _with_edited_flag(updated)


async def delete_comment(store: RecordStore, comment_id: uuid.UUID, actor: Actor) -> dict:
    comment = await _get_comment(store, comment_id)
    if not (_is_author(actor, comment) or actor.is_super_admin):
        raise NotPermitted("Only the comment's author or a super-admin can delete it")

    async with store.savepoint():
        await store.delete(COMMENTS, comment_id)
        await audit.record_audit(
            store, actor.id, audit.COMMENT_DELETED, "policy", comment["policy_id"],
            details={"comment_id": comment_id, "author_id": comment["user_id"]},
        )
    logger.info(
        "Comment deleted",
        extra={"event": "comment_deleted", "policy_id": str(comment["policy_id"]), "actor_id": str(actor.id)},
    )
    return {"deleted": True, "id": comment_id}
