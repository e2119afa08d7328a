"""
Versioning API endpoints: clone-for-update, version family, replacement lookup.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.middleware.auth_middleware import get_current_actor, require_capability
from policyhub.policy.schemas import PolicyResponse
from policyhub.store.base import RecordStore
from policyhub.store.dependencies import get_store
from policyhub.versioning import service
from policyhub.versioning.schemas import ReplacementResponse, VersionFamilyResponse

router = APIRouter()


@router.post("/policies/{policy_id}/clone", response_model=PolicyResponse, status_code=201)
async def clone_policy(
    policy_id: uuid.UUID,
    actor: Actor = Depends(require_capability(Capability.AUTHOR)),
    store: RecordStore = Depends(get_store),
):
    """Start a new draft version of a published policy."""
    return await service.clone_for_update(store, policy_id, actor)


@router.get("/policies/{policy_id}/family", response_model=VersionFamilyResponse)
async def version_family(
    policy_id: uuid.UUID,
    status: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    """All versions sharing this policy's root, newest first."""
    versions = await service.get_version_family(store, policy_id, status)
    first = versions[0] if versions else {}
    return VersionFamilyResponse(
        root_policy_id=first.get("parent_policy_id") or first.get("id") or policy_id,
        policy_number=versions[0].get("policy_number") if versions else None,
        versions=versions,
    )


@router.get("/policies/{policy_id}/replacement", response_model=ReplacementResponse)
async def replacement(
    policy_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    """For an archived policy, the version that superseded it."""
    found = await service.find_replacement(store, policy_id)
    return ReplacementResponse(policy_id=policy_id, replaced=found is not None, replacement=found)
