"""
Comment Pydantic schemas.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=5000)


class CommentUpdate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    id: UUID
    policy_id: UUID
    user_id: UUID
    comment: str
    edited: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
    total: int
