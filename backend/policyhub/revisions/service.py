"""
Revision tracker: field-level change records with an accept/reject review.
Accepting a revision records the decision only; it never writes content back
to the policy.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from policyhub.audit import service as audit
from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.config import settings
from policyhub.core.errors import Forbidden, InvalidTransition, NotFound, NotPermitted, ValidationError
from policyhub.core.logging import get_logger
from policyhub.numbering.client import NumberingClient
from policyhub.policy.models import CONTENT_FIELDS
from policyhub.revisions.diff import word_diff
from policyhub.store.base import POLICIES, REVISIONS, Record, RecordStore, StaleRecordError
from policyhub.workflow.guard import ensure_can_review

logger = get_logger(__name__)

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
DECISIONS = (ACCEPTED, REJECTED)


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def derive_change_type(original: Optional[str], modified: Optional[str]) -> str:
    if _blank(original):
        return "addition"
    if _blank(modified):
        return "deletion"
    return "modification"


async def create_revision(
    store: RecordStore,
    numbering: NumberingClient,
    policy_id: uuid.UUID,
    field_name: str,
    original: Optional[str],
    modified: Optional[str],
    actor: Actor,
) -> Optional[Record]:
    """Record one proposed change to a content field. Returns None when nothing changed."""
    if not actor.can(Capability.AUTHOR):
        raise NotPermitted(f"Role '{actor.role.value}' cannot record revisions")
    if field_name not in CONTENT_FIELDS:
        raise ValidationError(
            f"Unknown field '{field_name}'",
            details={"allowed": list(CONTENT_FIELDS)},
        )
    if await store.get(POLICIES, policy_id) is None:
        raise NotFound(f"Policy {policy_id} not found")

    if (original or "") == (modified or ""):
        return None

    revision_number = await numbering.next_revision_number(policy_id)
    change_type = derive_change_type(original, modified)

    async with store.savepoint():
        revision = await store.insert(REVISIONS, {
            "id": uuid.uuid4(),
            "policy_id": policy_id,
            "field_name": field_name,
            "revision_number": revision_number,
            "original_content": original,
            "modified_content": modified,
            "change_type": change_type,
            "change_metadata": {"diff_data": word_diff(original, modified)},
            "status": PENDING,
            "created_by": actor.id,
            "created_at": datetime.now(timezone.utc),
        })
        await audit.record_audit(
            store, actor.id, audit.REVISION_CREATED, "policy_revision", revision["id"],
            details={"policy_id": policy_id, "field_name": field_name, "revision_number": revision_number},
        )
    logger.info(
        "Revision recorded",
        extra={
            "event": "revision_created",
            "policy_id": str(policy_id),
            "revision_id": str(revision["id"]),
            "actor_id": str(actor.id),
            "field_name": field_name,
            "change_type": change_type,
        },
    )
    return revision


async def record_field_changes(
    store: RecordStore,
    numbering: NumberingClient,
    policy: Mapping[str, Any],
    changes: Mapping[str, Any],
    actor: Actor,
) -> list[Record]:
    """Edit-save hook: one revision per content field whose value changed."""
    if not settings.REVISION_TRACKING_ENABLED:
        return []
    created = []
    for field_name in CONTENT_FIELDS:
        if field_name not in changes:
            continue
        revision = await create_revision(
            store, numbering, policy["id"], field_name,
            policy.get(field_name), changes[field_name], actor,
        )
        if revision is not None:
            created.append(revision)
    return created


async def review_revision(
    store: RecordStore,
    revision_id: uuid.UUID,
    decision: str,
    actor: Actor,
    comment: Optional[str] = None,
) -> Record:
    if decision not in DECISIONS:
        raise ValidationError(f"Decision must be one of {', '.join(DECISIONS)}, got '{decision}'")

    revision = await store.get(REVISIONS, revision_id)
    if revision is None:
        raise NotFound(f"Revision {revision_id} not found")
    if revision["status"] != PENDING:
        raise InvalidTransition(
            f"Revision {revision_id} was already {revision['status']}",
            details={"from_status": revision["status"], "to_status": decision},
        )

    policy = await store.get(POLICIES, revision["policy_id"])
    if policy is None:
        raise NotFound(f"Policy {revision['policy_id']} not found")

    ensure_can_review(actor, policy)
    # Stricter than the policy guard: super-admins cannot review their own revisions either
    if str(revision["created_by"]) == str(actor.id):
        raise Forbidden(
            "The author of a revision cannot review it",
            details={"revision_id": str(revision_id), "actor_id": str(actor.id)},
        )

    async with store.savepoint():
        try:
            reviewed = await store.update(
                REVISIONS,
                revision_id,
                {
                    "status": decision,
                    "reviewed_by": actor.id,
                    "reviewed_at": datetime.now(timezone.utc),
                    "review_comment": comment,
                },
                expected={"status": PENDING},
            )
        except StaleRecordError:
            raise InvalidTransition(f"Revision {revision_id} was reviewed concurrently") from None

        await audit.record_audit(
            store, actor.id, audit.REVISION_REVIEWED, "policy_revision", revision_id,
            details={"policy_id": revision["policy_id"], "decision": decision, "comment": comment},
        )
    logger.info(
        "Revision reviewed",
        extra={
            "event": "revision_reviewed",
            "policy_id": str(revision["policy_id"]),
            "revision_id": str(revision_id),
            "actor_id": str(actor.id),
            "decision": decision,
        },
    )
    return reviewed


async def list_revisions(
    store: RecordStore,
    policy_id: uuid.UUID,
    field_name: Optional[str] = None,
    status: Optional[str] = None,
) -> list[Record]:
    """Newest first."""
    where: dict[str, Any] = {"policy_id": policy_id}
    if field_name:
        where["field_name"] = field_name
    if status:
        where["status"] = status
    return await store.select(REVISIONS, where, order_by=("-created_at", "-revision_number"))


async def revision_summary(store: RecordStore, policy_id: uuid.UUID) -> dict:
    pending = await store.count(REVISIONS, {"policy_id": policy_id, "status": PENDING})
    total = await store.count(REVISIONS, {"policy_id": policy_id})
    return {
        "policy_id": policy_id,
        "pending_count": pending,
        "total_count": total,
        "has_unresolved_changes": pending > 0,
    }
