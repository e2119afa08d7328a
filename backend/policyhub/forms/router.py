"""
Form API endpoints: CRUD and status transitions.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.forms import service
from policyhub.forms.schemas import FormCreate, FormListResponse, FormResponse, FormUpdate
from policyhub.middleware.auth_middleware import get_current_actor, require_capability
from policyhub.numbering.client import NumberingClient
from policyhub.store.base import RecordStore
from policyhub.store.dependencies import get_numbering, get_store
from policyhub.workflow.schemas import TransitionRequest

router = APIRouter()


@router.post("", response_model=FormResponse, status_code=201)
async def create_form(
    data: FormCreate,
    actor: Actor = Depends(require_capability(Capability.AUTHOR)),
    store: RecordStore = Depends(get_store),
    numbering: NumberingClient = Depends(get_numbering),
):
    return await service.create_form(store, numbering, data, actor)


@router.get("", response_model=FormListResponse)
async def list_forms(
    status: Optional[str] = Query(None),
    form_type: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    forms = await service.list_forms(store, status, form_type, skip, limit)
    return FormListResponse(forms=forms, total=len(forms))


@router.get("/{form_id}", response_model=FormResponse)
async def get_form(
    form_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    return await service.get_form(store, form_id)


@router.put("/{form_id}", response_model=FormResponse)
async def update_form(
    form_id: uuid.UUID,
    data: FormUpdate,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    return await service.update_form(store, form_id, data, actor)


@router.post("/{form_id}/transition", response_model=FormResponse)
async def transition_form(
    form_id: uuid.UUID,
    data: TransitionRequest,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    return await service.transition_form(store, form_id, data.target_status, actor, data.comment)


@router.delete("/{form_id}")
async def delete_form(
    form_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    store: RecordStore = Depends(get_store),
):
    return await service.delete_form(store, form_id, actor)
