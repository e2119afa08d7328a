"""
Policy service: create, list, edit and delete policies.
Status changes are not made here; they go through the workflow service.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from policyhub.audit import service as audit
from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.config import settings
from policyhub.core.errors import InvalidTransition, NotFound, NotPermitted, ValidationError
from policyhub.core.logging import get_logger
from policyhub.numbering.client import NumberingClient
from policyhub.numbering.sequences import POLICY_TYPES
from policyhub.policy.models import CONTENT_FIELDS
from policyhub.policy.schemas import PolicyCreate, PolicyUpdate
from policyhub.revisions.service import record_field_changes
from policyhub.store.base import COMMENTS, POLICIES, REVISIONS, Record, RecordStore, StaleRecordError
from policyhub.workflow.guard import is_creator
from policyhub.workflow.state_machine import can_delete, check_creation
from policyhub.workflow.states import EDITABLE_STATUSES, PolicyStatus, canonicalize_record

logger = get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Create
# ═══════════════════════════════════════════════════════════════════

async def create_policy(
    store: RecordStore,
    numbering: NumberingClient,
    data: PolicyCreate,
    actor: Actor,
) -> Record:
    """Create the first version of a policy and assign its number."""
    initial_status = check_creation(data.status, actor)
    if data.policy_type not in POLICY_TYPES:
        raise ValidationError(
            f"Unknown policy type '{data.policy_type}'",
            details={"allowed": list(POLICY_TYPES)},
        )

    policy_number = await numbering.next_policy_number(data.policy_type)

    now = datetime.now(timezone.utc)
    async with store.savepoint():
        policy = await store.insert(POLICIES, {
            "id": uuid.uuid4(),
            "name": data.name,
            "purpose": data.purpose,
            "policy_text": data.policy_text,
            "procedure": data.procedure,
            "policy_type": data.policy_type,
            "policy_number": policy_number,
            "reviewer": data.reviewer,
            "status": initial_status.value,
            "creator_id": actor.id,
            "parent_policy_id": None,
            "created_at": now,
            "updated_at": now,
        })
        await audit.record_audit(
            store, actor.id, audit.POLICY_CREATED, "policy", policy["id"],
            details={"policy_number": policy_number, "policy_type": data.policy_type, "status": initial_status.value},
        )
    logger.info(
        "Policy created",
        extra={
            "event": "policy_created",
            "policy_id": str(policy["id"]),
            "policy_number": policy_number,
            "actor_id": str(actor.id),
            "to_status": initial_status.value,
        },
    )
    return canonicalize_record(policy)


# ═══════════════════════════════════════════════════════════════════
#  Read
# ═══════════════════════════════════════════════════════════════════

async def get_policy(store: RecordStore, policy_id: uuid.UUID) -> Record:
    policy = await store.get(POLICIES, policy_id)
    if policy is None:
        raise NotFound(f"Policy {policy_id} not found")
    return canonicalize_record(policy)


async def list_policies(
    store: RecordStore,
    page: int = 1,
    page_size: Optional[int] = None,
    status: Optional[str] = None,
    policy_type: Optional[str] = None,
    creator_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
) -> dict:
    page_size = page_size or settings.DEFAULT_PAGE_SIZE
    where: dict[str, Any] = {}
    if status:
        try:
            where["status"] = PolicyStatus.parse(status).value
        except ValueError as exc:
            raise ValidationError(str(exc)) from None
    if policy_type:
        where["policy_type"] = policy_type
    if creator_id:
        where["creator_id"] = creator_id

    any_of = None
    if search:
        any_of = [{"name__icontains": search}, {"policy_number__icontains": search}]

    rows = await store.select(
        POLICIES, where, any_of=any_of,
        order_by=("-updated_at", "-created_at"),
    )
    total = len(rows)
    start = (page - 1) * page_size
    return {
        "policies": [canonicalize_record(r) for r in rows[start:start + page_size]],
        "total": total,
        "page": page,
        "page_size": page_size,
    }


# ═══════════════════════════════════════════════════════════════════
#  Edit
# ═══════════════════════════════════════════════════════════════════

async def update_policy(
    store: RecordStore,
    numbering: NumberingClient,
    policy_id: uuid.UUID,
    data: PolicyUpdate,
    actor: Actor,
) -> Record:
    """Save edited content. Only drafts and returned policies are editable;
    every changed content field is recorded as a pending revision.
    """
    policy = await get_policy(store, policy_id)
    current = PolicyStatus.parse(policy["status"])
    if current not in EDITABLE_STATUSES:
        raise InvalidTransition(
            f"Policies in '{current}' cannot be edited",
            details={"from_status": current.value},
        )
    if not (actor.can(Capability.ADMINISTER) or (actor.can(Capability.AUTHOR) and is_creator(actor, policy))):
        raise NotPermitted("Only the policy's creator or an administrator can edit it")

    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v != policy.get(k)}
    if not changes:
        policy["revision_ids"] = []
        return policy

    changed_fields = sorted(changes)
    # Revisions and the content change commit together
    async with store.savepoint():
        revisions = await record_field_changes(store, numbering, policy, changes, actor)

        changes["updated_at"] = datetime.now(timezone.utc)
        try:
            updated = await store.update(POLICIES, policy_id, changes, expected={"status": current.value})
        except StaleRecordError:
            raise InvalidTransition(f"Policy {policy_id} changed status while it was being edited") from None

        await audit.record_audit(
            store, actor.id, audit.POLICY_UPDATED, "policy", policy_id,
            details={"fields": changed_fields, "revision_ids": [r["id"] for r in revisions]},
        )
    logger.info(
        "Policy updated",
        extra={
            "event": "policy_updated",
            "policy_id": str(policy_id),
            "actor_id": str(actor.id),
            "fields": changed_fields,
            "revision_count": len(revisions),
        },
    )
    updated = canonicalize_record(updated)
    updated["revision_ids"] = [r["id"] for r in revisions]
    return updated


# ═══════════════════════════════════════════════════════════════════
#  Delete
# ═══════════════════════════════════════════════════════════════════

async def delete_policy(store: RecordStore, policy_id: uuid.UUID, actor: Actor) -> dict:
    """Hard delete, taking the policy's revisions and comments with it.

    Deleting the root of a version family promotes its oldest later version to
    root so the remaining versions stay one family.
    """
    if not can_delete(actor.role):
        raise NotPermitted(f"Role '{actor.role.value}' cannot delete policies")

    policy = await get_policy(store, policy_id)

    async with store.savepoint():
        later_versions = await store.select(
            POLICIES, {"parent_policy_id": policy_id}, order_by=("created_at",),
        )
        new_root_id = None
        if later_versions:
            new_root_id = later_versions[0]["id"]
            await store.update(POLICIES, new_root_id, {"parent_policy_id": None})
            for version in later_versions[1:]:
                await store.update(POLICIES, version["id"], {"parent_policy_id": new_root_id})

        revisions = await store.select(REVISIONS, {"policy_id": policy_id})
        for revision in revisions:
            await store.delete(REVISIONS, revision["id"])
        comments = await store.select(COMMENTS, {"policy_id": policy_id})
        for comment in comments:
            await store.delete(COMMENTS, comment["id"])
        await store.delete(POLICIES, policy_id)

        await audit.record_audit(
            store, actor.id, audit.POLICY_DELETED, "policy", policy_id,
            details={
                "policy_number": policy.get("policy_number"),
                "status": policy["status"],
                "revisions_deleted": len(revisions),
                "comments_deleted": len(comments),
                "new_root_id": new_root_id,
            },
        )
    logger.info(
        "Policy deleted",
        extra={
            "event": "policy_deleted",
            "policy_id": str(policy_id),
            "policy_number": policy.get("policy_number"),
            "actor_id": str(actor.id),
        },
    )
    return {
        "deleted": True,
        "id": policy_id,
        "revisions_deleted": len(revisions),
        "comments_deleted": len(comments),
        "new_root_id": new_root_id,
    }
