"""
Workflow service: executes status transitions for policies.
Validation is delegated to the state machine; publishing goes through the
versioning engine; every change is audited and the creator is notified.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from policyhub.audit import service as audit
from policyhub.auth.schemas import Actor
from policyhub.core.errors import InvalidTransition
from policyhub.core.logging import get_logger
from policyhub.notifications.service import notify_status_change
from policyhub.policy.service import get_policy
from policyhub.store.base import POLICIES, Record, RecordStore, StaleRecordError
from policyhub.versioning.service import publish_with_archival
from policyhub.workflow.guard import can_review
from policyhub.workflow.state_machine import allowed_targets, check_transition
from policyhub.workflow.states import PolicyStatus, canonicalize_record

logger = get_logger(__name__)


@dataclass
class TransitionResult:
    record: Record
    from_status: PolicyStatus
    to_status: PolicyStatus
    archived_policy_ids: List[uuid.UUID] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


async def persist_status(
    store: RecordStore,
    table: str,
    record: Record,
    current: PolicyStatus,
    target: PolicyStatus,
    extra: Optional[dict[str, Any]] = None,
) -> Record:
    """Write the new status only if the row still holds `current`."""
    values: dict[str, Any] = {"status": target.value, "updated_at": datetime.now(timezone.utc)}
    values.update(extra or {})
    try:
        return await store.update(table, record["id"], values, expected={"status": current.value})
    except StaleRecordError:
        raise InvalidTransition(
            f"Record {record['id']} is no longer '{current}'",
            details={"from_status": current.value, "to_status": target.value},
        ) from None


async def transition(
    store: RecordStore,
    policy_id: uuid.UUID,
    target,
    actor: Actor,
    comment: Optional[str] = None,
) -> TransitionResult:
    """Move a policy to `target` on behalf of `actor`."""
    policy = await get_policy(store, policy_id)
    current = PolicyStatus.parse(policy["status"])
    rule = check_transition(current, target, actor, policy, comment)
    target = rule.target

    result = TransitionResult(record=policy, from_status=current, to_status=target)

    async with store.savepoint():
        if target == PolicyStatus.PUBLISHED:
            published = await publish_with_archival(store, policy, actor, comment=comment)
            result.record = published.policy
            result.archived_policy_ids = published.archived_policy_ids
            result.warnings = published.warnings
        else:
            extra: dict[str, Any] = {}
            if comment is not None:
                extra["reviewer_comment"] = comment
            if target == PolicyStatus.ARCHIVED:
                extra["archived_at"] = datetime.now(timezone.utc)
            elif current == PolicyStatus.ARCHIVED:
                extra["archived_at"] = None
            updated = await persist_status(store, POLICIES, policy, current, target, extra)
            result.record = canonicalize_record(updated)

        await audit.record_audit(
            store, actor.id, audit.STATUS_CHANGED, "policy", policy["id"],
            details={"from_status": current.value, "to_status": target.value, "comment": comment},
        )
    logger.info(
        "Policy status changed",
        extra={
            "event": "policy_transition",
            "policy_id": str(policy["id"]),
            "policy_number": policy.get("policy_number"),
            "actor_id": str(actor.id),
            "from_status": current.value,
            "to_status": target.value,
        },
    )

    await notify_status_change(store, result.record, current, target, actor)
    return result


async def list_allowed_transitions(store: RecordStore, policy_id: uuid.UUID, actor: Actor) -> List[PolicyStatus]:
    policy = await get_policy(store, policy_id)
    return allowed_targets(policy["status"], actor, policy)


async def review_queue(store: RecordStore, actor: Actor, skip: int = 0, limit: int = 50) -> List[Record]:
    """Under-review policies the actor is allowed to review, oldest first."""
    rows = await store.select(
        POLICIES,
        {"status": PolicyStatus.UNDER_REVIEW.value},
        order_by=("updated_at", "created_at"),
    )
    reviewable = [canonicalize_record(row) for row in rows if can_review(actor, row)]
    return reviewable[skip:skip + limit]
