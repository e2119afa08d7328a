"""
Policy status state machine.

Every allowed (from, to) pair lives in TRANSITIONS together with the capability
it needs. Status checks anywhere else in the code base go through the helpers
here instead of comparing strings.

`approved` is terminal: there is deliberately no approved -> published edge.
Publication happens straight from under-review.
"""
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union

from policyhub.auth.roles import Capability, Role, has_capability
from policyhub.auth.schemas import Actor
from policyhub.core.errors import InvalidTransition, NotPermitted, ValidationError
from policyhub.workflow.guard import ensure_can_review, is_creator
from policyhub.workflow.states import PolicyStatus

S = PolicyStatus

# Targets that are a reviewer's decision and therefore pass the maker/checker guard
REVIEW_TARGETS = frozenset({S.AWAITING_CHANGES, S.APPROVED, S.PUBLISHED, S.REJECTED})

DELETE_CAPABILITY = Capability.ADMINISTER


@dataclass(frozen=True)
class TransitionRule:
    source: Optional[PolicyStatus]  # None = record creation
    target: PolicyStatus
    capability: Capability
    # The record's creator may also move it while holding this capability
    creator_capability: Optional[Capability] = None
    comment_required: bool = False

    @property
    def is_review(self) -> bool:
        return self.source is not None and self.target in REVIEW_TARGETS


_RULES = (
    TransitionRule(None, S.DRAFT, Capability.AUTHOR),
    TransitionRule(None, S.UNDER_REVIEW, Capability.REVIEW),
    TransitionRule(S.DRAFT, S.UNDER_REVIEW, Capability.REVIEW, creator_capability=Capability.AUTHOR),
    TransitionRule(S.UNDER_REVIEW, S.DRAFT, Capability.REVIEW),
    TransitionRule(S.UNDER_REVIEW, S.AWAITING_CHANGES, Capability.REVIEW, comment_required=True),
    TransitionRule(S.UNDER_REVIEW, S.APPROVED, Capability.REVIEW),
    TransitionRule(S.UNDER_REVIEW, S.PUBLISHED, Capability.REVIEW),
    TransitionRule(S.UNDER_REVIEW, S.REJECTED, Capability.REVIEW),
    TransitionRule(S.AWAITING_CHANGES, S.DRAFT, Capability.ADMINISTER, creator_capability=Capability.AUTHOR),
    TransitionRule(S.AWAITING_CHANGES, S.UNDER_REVIEW, Capability.ADMINISTER, creator_capability=Capability.AUTHOR),
    TransitionRule(S.PUBLISHED, S.DRAFT, Capability.REVIEW),
    TransitionRule(S.PUBLISHED, S.ARCHIVED, Capability.ADMINISTER),
    TransitionRule(S.ARCHIVED, S.DRAFT, Capability.ADMINISTER),
)

TRANSITIONS: dict[tuple, TransitionRule] = {(r.source, r.target): r for r in _RULES}

INITIAL_STATUSES = frozenset(r.target for r in _RULES if r.source is None)


def _status(value: Union[str, PolicyStatus, None]) -> Optional[PolicyStatus]:
    if value is None:
        return None
    try:
        return PolicyStatus.parse(value)
    except ValueError as exc:
        raise ValidationError(str(exc)) from None


def get_rule(from_status, to_status) -> Optional[TransitionRule]:
    return TRANSITIONS.get((_status(from_status), _status(to_status)))


def _role_satisfies(rule: TransitionRule, role: Role, creator: bool) -> bool:
    if has_capability(role, rule.capability):
        return True
    return bool(creator and rule.creator_capability and has_capability(role, rule.creator_capability))


# ── Pure helpers ─────────────────────────────────────────────────

def is_review_action(to_status) -> bool:
    return _status(to_status) in REVIEW_TARGETS


def can_transition(from_status, to_status, role: Role, is_creator: bool = False) -> bool:
    """True when `role` may move a record from `from_status` to `to_status`.

    `from_status=None` asks about creating a record directly in `to_status`.
    Review targets additionally honour maker/checker: a non-admin creator
    never passes.
    """
    rule = get_rule(from_status, to_status)
    if rule is None or not _role_satisfies(rule, Role(role), is_creator):
        return False
    if rule.is_review and is_creator and Role(role) != Role.SUPER_ADMIN:
        return False
    return True


def allowed_targets(from_status, actor: Actor, record: Mapping[str, Any]) -> List[PolicyStatus]:
    creator = is_creator(actor, record)
    current = _status(from_status)
    return [
        rule.target for rule in _RULES
        if rule.source is not None
        and rule.source == current
        and can_transition(current, rule.target, actor.role, creator)
    ]


def can_delete(role: Role) -> bool:
    return has_capability(role, DELETE_CAPABILITY)


# ── Checks raising typed errors ──────────────────────────────────

def check_transition(
    from_status,
    to_status,
    actor: Actor,
    record: Mapping[str, Any],
    comment: Optional[str] = None,
) -> TransitionRule:
    """Validate a transition, raising in a fixed order:
    InvalidTransition, NotPermitted, ValidationError, then Forbidden (guard).
    """
    current, target = _status(from_status), _status(to_status)
    rule = TRANSITIONS.get((current, target))
    if rule is None:
        raise InvalidTransition(
            f"Cannot move from '{current}' to '{target}'",
            details={"from_status": str(current), "to_status": str(target)},
        )

    if not _role_satisfies(rule, actor.role, is_creator(actor, record)):
        raise NotPermitted(
            f"Role '{actor.role.value}' may not move a record from '{current}' to '{target}'",
            details={"role": actor.role.value, "from_status": str(current), "to_status": str(target)},
        )

    if rule.comment_required and not (comment or "").strip():
        raise ValidationError(f"A reviewer comment is required to move to '{target}'")

    if rule.is_review:
        ensure_can_review(actor, record)

    return rule


def check_creation(initial_status, actor: Actor) -> PolicyStatus:
    """Validate the status a new record starts in."""
    target = _status(initial_status) or S.DRAFT
    rule = TRANSITIONS.get((None, target))
    if rule is None:
        raise InvalidTransition(
            f"Records cannot be created in '{target}'",
            details={"to_status": str(target), "allowed": sorted(s.value for s in INITIAL_STATUSES)},
        )
    if not has_capability(actor.role, rule.capability):
        raise NotPermitted(
            f"Role '{actor.role.value}' may not create a record in '{target}'",
            details={"role": actor.role.value, "to_status": str(target)},
        )
    return target
