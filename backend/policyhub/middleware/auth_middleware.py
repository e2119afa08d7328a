"""
JWT-based authentication middleware.
Resolves the bearer token into an Actor; capability checks as dependencies.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from policyhub.auth.roles import Capability
from policyhub.auth.schemas import Actor
from policyhub.auth.service import actor_from_claims, decode_access_token

security = HTTPBearer()


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """Extract and validate JWT token from Authorization header."""
    try:
        payload = decode_access_token(credentials.credentials)
        return actor_from_claims(payload)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def require_capability(*capabilities: Capability):
    """Dependency factory: the current actor must hold every listed capability."""
    async def capability_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        missing = [c.value for c in capabilities if not actor.can(c)]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Required capability: {', '.join(missing)}",
            )
        return actor
    return capability_checker
