"""
Maker/checker guard: the author of a record may not review it.
Super-admins are exempt. Applies to policies and forms alike.
"""
from typing import Any, Mapping

from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.core.errors import Forbidden, NotPermitted


def is_creator(actor: Actor, record: Mapping[str, Any]) -> bool:
    creator_id = record.get("creator_id")
    return creator_id is not None and str(creator_id) == str(actor.id)


def can_review(actor: Actor, record: Mapping[str, Any]) -> bool:
    if actor.is_super_admin:
        return True
    return actor.can(Capability.REVIEW) and not is_creator(actor, record)


def ensure_can_review(actor: Actor, record: Mapping[str, Any]) -> None:
    """Raise NotPermitted when the role cannot review at all, Forbidden on a maker/checker clash."""
    if not actor.can(Capability.REVIEW):
        raise NotPermitted(
            f"Role '{actor.role.value}' cannot review",
            details={"role": actor.role.value},
        )
    if not can_review(actor, record):
        raise Forbidden(
            "The creator of a record cannot review it",
            details={"actor_id": str(actor.id), "record_id": str(record.get("id"))},
        )
