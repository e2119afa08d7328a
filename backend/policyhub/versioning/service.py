"""
Versioning & archival engine.

A policy's versions share one policy_number and point at the root version via
parent_policy_id. Publishing a version archives whichever sibling is currently
published, so each number has at most one published member.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from policyhub.audit import service as audit
from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.core.errors import InvalidTransition, NotPermitted, PolicyEngineError
from policyhub.core.logging import get_logger
from policyhub.policy.models import CONTENT_FIELDS
from policyhub.policy.service import get_policy
from policyhub.store.base import POLICIES, Record, RecordStore, StaleRecordError
from policyhub.workflow.states import PolicyStatus, canonicalize_record

logger = get_logger(__name__)


@dataclass
class PublishResult:
    policy: Record
    archived_policy_ids: List[uuid.UUID] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _lock_key(policy: Record) -> str:
    return f"policy_number:{policy.get('policy_number') or policy['id']}"


# ═══════════════════════════════════════════════════════════════════
#  Archive-on-publish
# ═══════════════════════════════════════════════════════════════════

async def _archive_sibling(store: RecordStore, sibling: Record, actor: Actor, superseded_by, now: datetime) -> None:
    await store.update(
        POLICIES,
        sibling["id"],
        {"status": PolicyStatus.ARCHIVED.value, "archived_at": now, "updated_at": now},
        expected={"status": PolicyStatus.PUBLISHED.value},
    )
    await audit.record_audit(
        store, actor.id, audit.POLICY_ARCHIVED, "policy", sibling["id"],
        details={"superseded_by": superseded_by, "policy_number": sibling.get("policy_number")},
    )


async def publish_with_archival(
    store: RecordStore,
    policy: Record,
    actor: Actor,
    comment: Optional[str] = None,
) -> PublishResult:
    """Archive the currently published sibling(s), then publish `policy`.

    Runs under a per-number lock inside one savepoint. Each archival gets its
    own nested savepoint: a failure there is logged and reported as a warning,
    and publishing goes ahead. The publish itself only applies if the record
    still holds the status it was read with.
    """
    current = PolicyStatus.parse(policy["status"])
    number = policy.get("policy_number")
    result = PublishResult(policy=policy)
    now = datetime.now(timezone.utc)

    async with store.lock(_lock_key(policy)), store.savepoint():
        siblings = []
        if number:
            siblings = await store.select(POLICIES, {
                "policy_number": number,
                "status": PolicyStatus.PUBLISHED.value,
                "id__ne": policy["id"],
            })

        for sibling in siblings:
            try:
                async with store.savepoint():
                    await _archive_sibling(store, sibling, actor, policy["id"], now)
            except PolicyEngineError as exc:
                warning = f"Could not archive previously published policy {sibling['id']}: {exc}"
                result.warnings.append(warning)
                logger.warning(
                    "Archival of published sibling failed, publishing anyway",
                    extra={
                        "event": "archival_failed",
                        "policy_id": str(sibling["id"]),
                        "policy_number": number,
                        "error": str(exc),
                    },
                )
                continue

            result.archived_policy_ids.append(sibling["id"])
            logger.info(
                "Archived superseded policy",
                extra={
                    "event": "policy_archived",
                    "policy_id": str(sibling["id"]),
                    "policy_number": number,
                    "actor_id": str(actor.id),
                },
            )

        values: dict[str, Any] = {
            "status": PolicyStatus.PUBLISHED.value,
            "published_at": now,
            "publisher_id": actor.id,
            "updated_at": now,
        }
        if comment is not None:
            values["reviewer_comment"] = comment
        try:
            published = await store.update(POLICIES, policy["id"], values, expected={"status": current.value})
        except StaleRecordError:
            raise InvalidTransition(
                f"Policy {policy['id']} changed status while it was being published",
                details={"from_status": current.value, "to_status": PolicyStatus.PUBLISHED.value},
            ) from None

        await audit.record_audit(
            store, actor.id, audit.POLICY_PUBLISHED, "policy", policy["id"],
            details={
                "policy_number": number,
                "archived_policy_ids": result.archived_policy_ids,
                "warnings": result.warnings,
            },
        )

    result.policy = canonicalize_record(published)
    logger.info(
        "Policy published",
        extra={
            "event": "policy_published",
            "policy_id": str(policy["id"]),
            "policy_number": number,
            "actor_id": str(actor.id),
            "from_status": current.value,
            "archived_count": len(result.archived_policy_ids),
        },
    )
    return result


# ═══════════════════════════════════════════════════════════════════
#  Clone for update
# ═══════════════════════════════════════════════════════════════════

async def clone_for_update(store: RecordStore, policy_id: uuid.UUID, actor: Actor) -> Record:
    """Start a new draft version of a published policy.

    The clone keeps the source's creator, so whoever authored the policy stays
    barred from reviewing its later versions.
    """
    if not actor.can(Capability.AUTHOR):
        raise NotPermitted(f"Role '{actor.role.value}' cannot create policy versions")

    source = await get_policy(store, policy_id)
    if source["status"] != PolicyStatus.PUBLISHED.value:
        raise InvalidTransition(
            "Only published policies can be cloned for update",
            details={"from_status": source["status"]},
        )

    now = datetime.now(timezone.utc)
    clone = {field_name: source.get(field_name) for field_name in CONTENT_FIELDS}
    clone.update({
        "id": uuid.uuid4(),
        "policy_type": source["policy_type"],
        "policy_number": source.get("policy_number"),
        "reviewer": source.get("reviewer"),
        "creator_id": source.get("creator_id"),
        "parent_policy_id": source.get("parent_policy_id") or source["id"],
        "status": PolicyStatus.DRAFT.value,
        "created_at": now,
        "updated_at": now,
    })
    async with store.savepoint():
        created = await store.insert(POLICIES, clone)
        await audit.record_audit(
            store, actor.id, audit.POLICY_CLONED, "policy", created["id"],
            details={"source_id": source["id"], "policy_number": source.get("policy_number")},
        )
    logger.info(
        "Policy cloned for update",
        extra={
            "event": "policy_cloned",
            "policy_id": str(created["id"]),
            "source_id": str(source["id"]),
            "policy_number": source.get("policy_number"),
            "actor_id": str(actor.id),
        },
    )
    return canonicalize_record(created)


# ═══════════════════════════════════════════════════════════════════
#  Queries
# ═══════════════════════════════════════════════════════════════════

def _label_versions(root_id, members: List[Record]) -> None:
    """1.0 for the root, then 1.1, 1.2, ... for clones in creation order."""
    clones = sorted(
        (m for m in members if m["id"] != root_id),
        key=lambda m: (m.get("created_at") is not None, m.get("created_at")),
    )
    for member in members:
        if member["id"] == root_id:
            member["version_label"] = "1.0"
    for index, member in enumerate(clones, start=1):
        member["version_label"] = f"1.{index}"


async def get_version_family(
    store: RecordStore,
    policy_id: uuid.UUID,
    status: Optional[str] = None,
) -> List[Record]:
    """Every version sharing the policy's root, newest first, optionally filtered by status."""
    policy = await get_policy(store, policy_id)
    root_id = policy.get("parent_policy_id") or policy["id"]

    members = await store.select(
        POLICIES,
        any_of=[{"id": root_id}, {"parent_policy_id": root_id}],
        order_by=("-created_at",),
    )
    for member in members:
        canonicalize_record(member)
    _label_versions(root_id, members)

    if status is not None:
        wanted = PolicyStatus.parse(status).value
        members = [m for m in members if m["status"] == wanted]
    return members


async def find_replacement(store: RecordStore, policy_id: uuid.UUID) -> Optional[Record]:
    """The version that took over from an archived policy, if any."""
    policy = await get_policy(store, policy_id)
    if policy["status"] != PolicyStatus.ARCHIVED.value or policy.get("archived_at") is None:
        return None
    if not policy.get("policy_number"):
        return None

    # Archive and publish share one timestamp, so the successor may equal archived_at
    rows = await store.select(
        POLICIES,
        {
            "policy_number": policy["policy_number"],
            "status": PolicyStatus.PUBLISHED.value,
            "published_at__gte": policy["archived_at"],
            "id__ne": policy["id"],
        },
        order_by=("published_at",),
        limit=1,
    )
    return canonicalize_record(rows[0]) if rows else None
