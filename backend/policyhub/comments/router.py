"""
Comment API endpoints: the discussion thread under each policy.
"""
import uuid

from fastapi import APIRouter, Depends

from policyhub.auth.schemas import Actor
from policyhub.comments import service
from policyhub.comments.schemas import CommentCreate, CommentListResponse, CommentResponse, CommentUpdate
from policyhub.middleware.auth_middleware import get_current_actor
from policyhub.store.base import RecordStore
from policyhub.store.dependencies import get_store

router = APIRouter()


@router.get("/policies/{policy_id}", response_model=CommentListResponse)
async def list_comments(
    policy_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    comments = await service.list_comments(store, policy_id)
    return CommentListResponse(comments=comments, total=len(comments))


@router.post("/policies/{policy_id}", response_model=CommentResponse, status_code=201)
async def add_comment(
    policy_id: uuid.UUID,
    data: CommentCreate,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    return await service.add_comment(store, policy_id, data.comment, actor)


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: uuid.UUID,
    data: CommentUpdate,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    """Authors only; super-admins cannot rewrite someone else's words."""
    return await service.update_comment(store, comment_id, data.comment, actor)


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    return await service.delete_comment(store, comment_id, actor)
