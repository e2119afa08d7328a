"""
In-app notifications for policy status changes.
Delivery is best effort: failures are logged and never undo the transition.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from policyhub.auth.schemas import Actor
from policyhub.config import settings
from policyhub.core.errors import NotFound, PolicyEngineError
from policyhub.core.logging import get_logger
from policyhub.store.base import NOTIFICATIONS, Record, RecordStore
from policyhub.workflow.states import PolicyStatus

logger = get_logger(__name__)

# ── Notification types ──
STATUS_CHANGE = "policy_status_change"
ASSIGNMENT = "policy_assignment"
PUBLISHED = "policy_published"
RETURNED = "policy_returned"
COMMENT = "policy_comment"


def _notification_type(new_status: PolicyStatus) -> str:
    if new_status == PolicyStatus.UNDER_REVIEW:
        return ASSIGNMENT
    if new_status == PolicyStatus.PUBLISHED:
        return PUBLISHED
    if new_status == PolicyStatus.AWAITING_CHANGES:
        return RETURNED
    return STATUS_CHANGE


def _render(kind: str, name: str, old_status: Optional[PolicyStatus], new_status: PolicyStatus) -> tuple[str, str]:
    if kind == ASSIGNMENT:
        return f"New Policy Assignment: {name}", f'You have been assigned to review the policy "{name}".'
    if kind == PUBLISHED:
        return f"Policy Published: {name}", f'Your policy "{name}" has been published and is now live.'
    if kind == RETURNED:
        return f"Policy Returned: {name}", f'Your policy "{name}" requires changes before publication.'
    return (
        f"Policy Status Updated: {name}",
        f'The policy "{name}" status has changed from {old_status or PolicyStatus.DRAFT} to {new_status}.',
    )


def _display_name(policy: Mapping[str, Any]) -> str:
    return policy.get("name") or policy.get("policy_number") or "Untitled policy"


async def _deliver(store: RecordStore, recipient, kind: str, title: str, message: str, metadata: dict) -> Optional[Record]:
    policy_id = metadata.get("policy_id")
    record = {
        "id": uuid.uuid4(),
        "user_id": recipient,
        "type": kind,
        "title": title,
        "message": message,
        "metadata": metadata,
        "read": False,
        "created_at": datetime.now(timezone.utc),
    }

    try:
        async with store.savepoint():
            created = await store.insert(NOTIFICATIONS, record)
    except PolicyEngineError as exc:
        logger.warning(
            "Notification delivery failed",
            extra={"event": "notification_failed", "policy_id": policy_id, "error": str(exc)},
        )
        return None

    logger.info(
        "Notification created",
        extra={"event": "notification_created", "policy_id": policy_id, "operation": kind},
    )
    return created


async def notify_status_change(
    store: RecordStore,
    policy: Mapping[str, Any],
    old_status: Optional[PolicyStatus],
    new_status: PolicyStatus,
    actor: Actor,
) -> Optional[Record]:
    """Notify the policy's creator about a status change made by someone else."""
    if not settings.NOTIFICATIONS_ENABLED:
        return None

    kind = _notification_type(new_status)
    policy_id = str(policy.get("id"))

    if kind == ASSIGNMENT:
        # The reviewer field is free text; there is no user id to deliver to
        logger.info(
            "Policy submitted for review",
            extra={"event": "notification_unrouted", "policy_id": policy_id, "to_status": str(new_status)},
        )
        return None

    recipient = policy.get("creator_id")
    if recipient is None or str(recipient) == str(actor.id):
        return None

    name = _display_name(policy)
    title, message = _render(kind, name, old_status, new_status)
    return await _deliver(store, recipient, kind, title, message, {
        "policy_id": policy_id,
        "policy_name": name,
        "old_status": str(old_status) if old_status else None,
        "new_status": str(new_status),
        "reviewer_comment": policy.get("reviewer_comment"),
        "actor_id": str(actor.id),
    })


async def notify_comment(
    store: RecordStore,
    policy: Mapping[str, Any],
    comment: Mapping[str, Any],
    actor: Actor,
) -> Optional[Record]:
    """Tell the policy's creator that someone else commented on it."""
    if not settings.NOTIFICATIONS_ENABLED:
        return None

    recipient = policy.get("creator_id")
    if recipient is None or str(recipient) == str(actor.id):
        return None

    name = _display_name(policy)
    return await _deliver(
        store, recipient, COMMENT,
        f"Comment Added: {name}",
        f'A reviewer has added a comment to your policy "{name}".',
        {
            "policy_id": str(policy.get("id")),
            "policy_name": name,
            "comment_id": str(comment["id"]),
            "reviewer_comment": comment["comment"],
            "actor_id": str(actor.id),
        },
    )


async def list_notifications(
    store: RecordStore,
    actor: Actor,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 50,
) -> list[Record]:
    where: dict[str, Any] = {"user_id": actor.id}
    if unread_only:
        where["read"] = False
    return await store.select(NOTIFICATIONS, where, order_by=("-created_at",), offset=skip, limit=limit)


async def mark_read(store: RecordStore, notification_id: uuid.UUID, actor: Actor) -> Record:
    notification = await store.get(NOTIFICATIONS, notification_id)
    # Other users' notifications are reported as missing
    if notification is None or str(notification["user_id"]) != str(actor.id):
        raise NotFound(f"Notification {notification_id} not found")
    return await store.update(NOTIFICATIONS, notification_id, {"read": True})


async def count_unread(store: RecordStore, actor: Actor) -> int:
    return await store.count(NOTIFICATIONS, {"user_id": actor.id, "read": False})
