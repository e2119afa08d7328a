"""
Workflow API endpoints: status transitions and the review queue.
"""
import uuid

from fastapi import APIRouter, Depends, Query

from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.middleware.auth_middleware import get_current_actor, require_capability
from policyhub.policy.service import get_policy
from policyhub.store.base import RecordStore
from policyhub.store.dependencies import get_store
from policyhub.workflow import service
from policyhub.workflow.schemas import (
    AllowedTransitionsResponse,
    ReviewQueueResponse,
    TransitionRequest,
    TransitionResponse,
)

router = APIRouter()


@router.post("/policies/{policy_id}/transition", response_model=TransitionResponse)
async def transition_policy(
    policy_id: uuid.UUID,
    data: TransitionRequest,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    """Submit, review, publish, archive or restore a policy."""
    result = await service.transition(store, policy_id, data.target_status, actor, data.comment)
    return TransitionResponse(
        policy=result.record,
        from_status=result.from_status.value,
        to_status=result.to_status.value,
        archived_policy_ids=result.archived_policy_ids,
        warnings=result.warnings,
    )


@router.get("/policies/{policy_id}/allowed-transitions", response_model=AllowedTransitionsResponse)
async def allowed_transitions(
    policy_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    policy = await get_policy(store, policy_id)
    targets = await service.list_allowed_transitions(store, policy_id, actor)
    return AllowedTransitionsResponse(
        policy_id=policy_id,
        current_status=policy["status"],
        allowed=[t.value for t in targets],
    )


@router.get("/review-queue", response_model=ReviewQueueResponse)
async def review_queue(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(require_capability(Capability.REVIEW)),
    store: RecordStore = Depends(get_store),
):
    """Policies under review that the caller may decide on (never their own)."""
    policies = await service.review_queue(store, actor, skip, limit)
    return ReviewQueueResponse(policies=policies, total=len(policies))
