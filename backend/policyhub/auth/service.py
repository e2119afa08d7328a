"""
Auth business logic: JWT encode/decode for the external identity context.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt

from policyhub.config import settings
from policyhub.auth.roles import Role
from policyhub.auth.schemas import Actor


def create_access_token(user_id: str, role: str, name: Optional[str] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": Role(role).value,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES),
        "iat": now,
    }
    if name:
        payload["name"] = name
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


def actor_from_claims(payload: dict) -> Actor:
    """Build an Actor from decoded claims. Raises ValueError on malformed claims."""
    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or not role:
        raise ValueError("Token is missing 'sub' or 'role'")
    return Actor(id=UUID(str(user_id)), role=Role(role), name=payload.get("name"))
