"""
Versioning Pydantic schemas: version families and replacement lookups.
"""
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from policyhub.policy.schemas import PolicyResponse


class PolicyVersionResponse(PolicyResponse):
    version_label: str


class VersionFamilyResponse(BaseModel):
    root_policy_id: UUID
    policy_number: Optional[str] = None
    versions: List[PolicyVersionResponse]


class ReplacementResponse(BaseModel):
    policy_id: UUID
    replaced: bool
    replacement: Optional[PolicyResponse] = None
