"""
Form service: numbered forms following the same workflow rules as policies.
Forms have no version families, so publishing never archives anything.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from policyhub.audit import service as audit
from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.core.errors import InvalidTransition, NotFound, NotPermitted, ValidationError
from policyhub.core.logging import get_logger
from policyhub.forms.schemas import FormCreate, FormUpdate
from policyhub.numbering.client import NumberingClient
from policyhub.store.base import FORMS, Record, RecordStore, StaleRecordError
from policyhub.workflow.guard import is_creator
from policyhub.workflow.service import persist_status
from policyhub.workflow.state_machine import can_delete, check_creation, check_transition
from policyhub.workflow.states import EDITABLE_STATUSES, PolicyStatus, canonicalize_record

logger = get_logger(__name__)


async def create_form(store: RecordStore, numbering: NumberingClient, data: FormCreate, actor: Actor) -> Record:
    initial_status = check_creation(data.status, actor)
    form_number = await numbering.next_form_number(data.form_type)

    now = datetime.now(timezone.utc)
    async with store.savepoint():
        form = await store.insert(FORMS, {
            "id": uuid.uuid4(),
            "name": data.name,
            "purpose": data.purpose,
            "form_content": data.form_content,
            "form_type": data.form_type,
            "form_number": form_number,
            "reviewer": data.reviewer,
            "status": initial_status.value,
            "creator_id": actor.id,
            "created_at": now,
            "updated_at": now,
        })
        await audit.record_audit(
            store, actor.id, audit.FORM_CREATED, "form", form["id"],
            details={"form_number": form_number, "form_type": data.form_type},
        )
    logger.info(
        "Form created",
        extra={"event": "form_created", "form_id": str(form["id"]), "actor_id": str(actor.id), "form_number": form_number},
    )
    return canonicalize_record(form)


async def get_form(store: RecordStore, form_id: uuid.UUID) -> Record:
    form = await store.get(FORMS, form_id)
    if form is None:
        raise NotFound(f"Form {form_id} not found")
    return canonicalize_record(form)


async def list_forms(
    store: RecordStore,
    status: Optional[str] = None,
    form_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> list[Record]:
    where: dict[str, Any] = {}
    if status:
        try:
            where["status"] = PolicyStatus.parse(status).value
        except ValueError as exc:
            raise ValidationError(str(exc)) from None
    if form_type:
        where["form_type"] = form_type
    rows = await store.select(FORMS, where, order_by=("-updated_at",), offset=skip, limit=limit)
    return [canonicalize_record(r) for r in rows]


async def update_form(store: RecordStore, form_id: uuid.UUID, data: FormUpdate, actor: Actor) -> Record:
    form = await get_form(store, form_id)
    current = PolicyStatus.parse(form["status"])
    if current not in EDITABLE_STATUSES:
        raise InvalidTransition(f"Forms in '{current}' cannot be edited", details={"from_status": current.value})
    if not (actor.can(Capability.ADMINISTER) or (actor.can(Capability.AUTHOR) and is_creator(actor, form))):
        raise NotPermitted("Only the form's creator or an administrator can edit it")

    changes = data.model_dump(exclude_unset=True)
    if not changes:
        return form
    changes["updated_at"] = datetime.now(timezone.utc)
    async with store.savepoint():
        try:
            updated = await store.update(FORMS, form_id, changes, expected={"status": current.value})
        except StaleRecordError:
            raise InvalidTransition(f"Form {form_id} changed status while it was being edited") from None

        await audit.record_audit(
            store, actor.id, audit.FORM_UPDATED, "form", form_id,
            details={"fields": sorted(k for k in changes if k != "updated_at")},
        )
    return canonicalize_record(updated)


async def transition_form(
    store: RecordStore,
    form_id: uuid.UUID,
    target,
    actor: Actor,
    comment: Optional[str] = None,
) -> Record:
    form = await get_form(store, form_id)
    current = PolicyStatus.parse(form["status"])
    rule = check_transition(current, target, actor, form, comment)

    extra = {"reviewer_comment": comment} if comment is not None else None
    async with store.savepoint():
        updated = await persist_status(store, FORMS, form, current, rule.target, extra)
        await audit.record_audit(
            store, actor.id, audit.FORM_STATUS_CHANGED, "form", form_id,
            details={"from_status": current.value, "to_status": rule.target.value, "comment": comment},
        )
    logger.info(
        "Form status changed",
        extra={
            "event": "form_transition",
            "form_id": str(form_id),
            "actor_id": str(actor.id),
            "from_status": current.value,
            "to_status": rule.target.value,
        },
    )
    return canonicalize_record(updated)


async def delete_form(store: RecordStore, form_id: uuid.UUID, actor: Actor) -> dict:
    if not can_delete(actor.role):
        raise NotPermitted(f"Role '{actor.role.value}' cannot delete forms")
    form = await get_form(store, form_id)
    async with store.savepoint():
        await store.delete(FORMS, form_id)
        await audit.record_audit(
            store, actor.id, audit.FORM_DELETED, "form", form_id,
            details={"form_number": form.get("form_number")},
        )
    logger.info("Form deleted", extra={"event": "form_deleted", "form_id": str(form_id), "actor_id": str(actor.id)})
    return {"deleted": True, "id": form_id}
