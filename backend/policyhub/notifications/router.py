"""
Notification API endpoints: the caller's own inbox.
"""
import uuid

from fastapi import APIRouter, Depends, Query

from policyhub.auth.schemas import Actor
from policyhub.middleware.auth_middleware import get_current_actor
from policyhub.notifications import service
from policyhub.notifications.schemas import NotificationListResponse, NotificationResponse
from policyhub.store.base import RecordStore
from policyhub.store.dependencies import get_store

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    notifications = await service.list_notifications(store, actor, unread_only, skip, limit)
    unread = await service.count_unread(store, actor)
    return NotificationListResponse(notifications=notifications, unread=unread)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    return await service.mark_read(store, notification_id, actor)
