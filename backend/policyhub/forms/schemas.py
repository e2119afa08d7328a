"""
Form Pydantic schemas.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from policyhub.workflow.states import PolicyStatus


class FormCreate(BaseModel):
    form_type: str = Field(..., min_length=1, max_length=50)
    name: Optional[str] = None
    purpose: Optional[str] = None
    form_content: Optional[str] = None
    reviewer: Optional[str] = Field(None, max_length=255)
    status: Optional[str] = None

    @field_validator("form_type")
    @classmethod
    def form_type_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Form type cannot be blank")
        return v.strip()

    @field_validator("status")
    @classmethod
    def status_valid(cls, v: Optional[str]) -> Optional[str]:
        return PolicyStatus.parse(v).value if v is not None else None


class FormUpdate(BaseModel):
    name: Optional[str] = None
    purpose: Optional[str] = None
    form_content: Optional[str] = None
    reviewer: Optional[str] = Field(None, max_length=255)


class FormResponse(BaseModel):
    id: UUID
    name: Optional[str] = None
    purpose: Optional[str] = None
    form_content: Optional[str] = None
    form_number: Optional[str] = None
    form_type: str
    reviewer: Optional[str] = None
    reviewer_comment: Optional[str] = None
    status: str
    creator_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def status_canonical(cls, v) -> str:
        return PolicyStatus.parse(v).value


class FormListResponse(BaseModel):
    forms: List[FormResponse]
    total: int
