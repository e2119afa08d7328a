"""
Revision Pydantic schemas.
"""
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class RevisionCreate(BaseModel):
    policy_id: UUID
    field_name: str = Field(..., description="name | purpose | policy_text | procedure")
    original_content: Optional[str] = None
    modified_content: Optional[str] = None


class RevisionReview(BaseModel):
    decision: str = Field(..., pattern="^(accepted|rejected)$")
    comment: Optional[str] = None


class RevisionResponse(BaseModel):
    id: UUID
    policy_id: UUID
    field_name: str
    revision_number: int
    original_content: Optional[str] = None
    modified_content: Optional[str] = None
    change_type: str
    change_metadata: Optional[dict[str, Any]] = None
    status: str
    reviewed_by: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    review_comment: Optional[str] = None
    created_by: UUID
    created_at: Optional[datetime] = None


class RevisionCreateResponse(BaseModel):
    """`revision` is null when original and modified content are identical."""
    created: bool
    revision: Optional[RevisionResponse] = None


class RevisionListResponse(BaseModel):
    revisions: List[RevisionResponse]
    total: int


class RevisionSummary(BaseModel):
    policy_id: UUID
    pending_count: int
    total_count: int
    has_unresolved_changes: bool
