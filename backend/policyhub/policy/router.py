"""
Policy API endpoints: CRUD over policy versions.
Status changes live under /api/workflow, version operations under /api/versioning.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.middleware.auth_middleware import get_current_actor, require_capability
from policyhub.numbering.client import NumberingClient
from policyhub.policy import service
from policyhub.policy.schemas import (
    PolicyCreate,
    PolicyListResponse,
    PolicyResponse,
    PolicyUpdate,
    PolicyUpdateResponse,
)
from policyhub.store.base import RecordStore
from policyhub.store.dependencies import get_numbering, get_store

router = APIRouter()


@router.post("", response_model=PolicyResponse, status_code=201)
async def create_policy(
    data: PolicyCreate,
    actor: Actor = Depends(require_capability(Capability.AUTHOR)),
    store: RecordStore = Depends(get_store),
    numbering: NumberingClient = Depends(get_numbering),
):
    """Create a policy in draft (or under-review for publishers) with a fresh number."""
    return await service.create_policy(store, numbering, data, actor)


@router.get("", response_model=PolicyListResponse)
async def list_policies(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    status: Optional[str] = Query(None),
    policy_type: Optional[str] = Query(None),
    creator_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    """List policies with pagination, status/type/creator filters and search."""
    return await service.list_policies(store, page, page_size, status, policy_type, creator_id, search)


@router.get("/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    return await service.get_policy(store, policy_id)


@router.put("/{policy_id}", response_model=PolicyUpdateResponse)
async def update_policy(
    policy_id: uuid.UUID,
    data: PolicyUpdate,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
    numbering: NumberingClient = Depends(get_numbering),
):
    """Save edited content; changed fields are recorded as pending revisions."""
    return await service.update_policy(store, numbering, policy_id, data, actor)


@router.delete("/{policy_id}")
async def delete_policy(
    policy_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    """Hard delete (super-admin). Revisions and comments go with the policy."""
    return await service.delete_policy(store, policy_id, actor)
