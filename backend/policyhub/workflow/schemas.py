"""
Workflow Pydantic schemas: transition requests and results.
"""
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from policyhub.policy.schemas import PolicyResponse
from policyhub.workflow.states import PolicyStatus


class TransitionRequest(BaseModel):
    """Move a record to another status."""
    target_status: str = Field(..., description="draft | under-review | awaiting-changes | approved | published | archived | rejected")
    comment: Optional[str] = None

    @field_validator("target_status")
    @classmethod
    def target_valid(cls, v: str) -> str:
        return PolicyStatus.parse(v).value


class TransitionResponse(BaseModel):
    policy: PolicyResponse
    from_status: str
    to_status: str
    archived_policy_ids: List[UUID] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class AllowedTransitionsResponse(BaseModel):
    policy_id: UUID
    current_status: str
    allowed: List[str]


class ReviewQueueResponse(BaseModel):
    policies: List[PolicyResponse]
    total: int
