"""
Revision API endpoints: record, list, summarise and review field-level changes.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from policyhub.auth.schemas import Actor
from policyhub.middleware.auth_middleware import get_current_actor
from policyhub.numbering.client import NumberingClient
from policyhub.revisions import service
from policyhub.revisions.schemas import (
    RevisionCreate,
    RevisionCreateResponse,
    RevisionListResponse,
    RevisionResponse,
    RevisionReview,
    RevisionSummary,
)
from policyhub.store.base import RecordStore
from policyhub.store.dependencies import get_numbering, get_store

router = APIRouter()


@router.post("", response_model=RevisionCreateResponse, status_code=201)
async def create_revision(
    data: RevisionCreate,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
    numbering: NumberingClient = Depends(get_numbering),
):
    revision = await service.create_revision(
        store, numbering, data.policy_id, data.field_name,
        data.original_content, data.modified_content, actor,
    )
    return RevisionCreateResponse(created=revision is not None, revision=revision)


@router.get("", response_model=RevisionListResponse)
async def list_revisions(
    policy_id: uuid.UUID = Query(...),
    field_name: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    """Revisions of a policy (optionally one field), newest first."""
    revisions = await service.list_revisions(store, policy_id, field_name, status)
    return RevisionListResponse(revisions=revisions, total=len(revisions))


@router.get("/summary", response_model=RevisionSummary)
async def revision_summary(
    policy_id: uuid.UUID = Query(...),
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    return await service.revision_summary(store, policy_id)


@router.post("/{revision_id}/review", response_model=RevisionResponse)
async def review_revision(
    revision_id: uuid.UUID,
    data: RevisionReview,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    """Accept or reject a pending revision. Authors cannot review their own changes."""
    return await service.review_revision(store, revision_id, data.decision, actor, data.comment)
