"""
Auth Pydantic schemas: the acting identity and token payloads.
"""
from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID

from policyhub.auth.roles import Capability, Role, capabilities_for


class Actor(BaseModel):
    """The authenticated caller, as resolved from the identity provider's token."""
    id: UUID
    role: Role
    name: Optional[str] = None

    @property
    def capabilities(self) -> frozenset:
        return capabilities_for(self.role)

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN


# ── Request Schemas ──
class DevTokenRequest(BaseModel):
    user_id: UUID
    role: Role
    name: Optional[str] = None


# ── Response Schemas ──
class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    actor: Actor


class ActorResponse(BaseModel):
    id: UUID
    role: Role
    name: Optional[str] = None
    capabilities: List[Capability]
