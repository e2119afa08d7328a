"""
Pydantic v2 schemas for policy CRUD.
Content fields are opaque rich-text strings; status is always reported in
its canonical spelling.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from policyhub.workflow.states import PolicyStatus


def _canonical(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    return PolicyStatus.parse(v).value


class PolicyCreate(BaseModel):
    policy_type: str = Field(..., description="RP | HR | S | Admin | Finance | OTHER")
    name: Optional[str] = None
    purpose: Optional[str] = None
    policy_text: Optional[str] = None
    procedure: Optional[str] = None
    reviewer: Optional[str] = Field(None, max_length=255)
    # draft for authors; publishers may submit straight to under-review
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def status_valid(cls, v: Optional[str]) -> Optional[str]:
        return _canonical(v)


class PolicyUpdate(BaseModel):
    name: Optional[str] = None
    purpose: Optional[str] = None
    policy_text: Optional[str] = None
    procedure: Optional[str] = None
    reviewer: Optional[str] = Field(None, max_length=255)


class PolicyResponse(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    purpose: Optional[str] = None
    policy_text: Optional[str] = None
    procedure: Optional[str] = None
    policy_number: Optional[str] = None
    policy_type: str
    status: str
    creator_id: Optional[uuid.UUID] = None
    publisher_id: Optional[uuid.UUID] = None
    reviewer: Optional[str] = None
    reviewer_comment: Optional[str] = None
    parent_policy_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("status", mode="before")
    @classmethod
    def status_canonical(cls, v) -> str:
        return PolicyStatus.parse(v).value


class PolicyListResponse(BaseModel):
    policies: List[PolicyResponse]
    total: int
    page: int
    page_size: int


class PolicyUpdateResponse(PolicyResponse):
    """Updated policy plus the revisions recorded for the edit."""
    revision_ids: List[uuid.UUID] = Field(default_factory=list)
