"""
Auth API endpoints: current actor lookup and development token issuance.
Real tokens come from the upstream identity provider.
"""
from fastapi import APIRouter, Depends, HTTPException

from policyhub.config import settings
from policyhub.auth.schemas import Actor, ActorResponse, DevTokenRequest, TokenResponse
from policyhub.auth.service import create_access_token
from policyhub.middleware.auth_middleware import get_current_actor

router = APIRouter()


@router.get("/me", response_model=ActorResponse)
async def me(actor: Actor = Depends(get_current_actor)):
    """Return the calling actor and the capabilities their role grants."""
    return ActorResponse(
        id=actor.id,
        role=actor.role,
        name=actor.name,
        capabilities=sorted(actor.capabilities, key=lambda c: c.value),
    )


@router.post("/dev-token", response_model=TokenResponse)
async def dev_token(data: DevTokenRequest):
    """Issue a signed token for local development. Disabled in production."""
    if settings.is_production:
        raise HTTPException(status_code=404, detail="Not found")
    token = create_access_token(str(data.user_id), data.role.value, data.name)
    return TokenResponse(
        access_token=token,
        actor=Actor(id=data.user_id, role=data.role, name=data.name),
    )
