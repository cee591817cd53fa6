"""
Access-token helpers and the authenticated principal.

Issuing tokens (login, refresh, password handling) belongs to the
authentication service. The engagement core only needs to turn a verified
Bearer token into an ``AuthenticatedPrincipal`` that is passed explicitly to
every service call.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from gigbridge.core.config import settings
from gigbridge.models.user import UserRole


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """The caller of a core operation."""

    id: uuid.UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def create_access_token(
    user_id: uuid.UUID,
    role: UserRole | str,
    expires_minutes: int | None = None,
) -> str:
    """Encode a signed access token carrying ``sub`` and ``role`` claims."""
    now = datetime.now(timezone.utc)
    ttl = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    payload = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AuthenticatedPrincipal:
    """Verify a token and return the principal it identifies.

    Raises:
        ValueError: If the token is expired, malformed or carries an
            unknown role.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise ValueError("Token has expired")
    except jwt.InvalidTokenError:
        raise ValueError("Invalid token")

    if payload.get("type") != "access":
        raise ValueError("Invalid token type")

    try:
        return AuthenticatedPrincipal(
            id=uuid.UUID(payload["sub"]),
            role=UserRole(payload["role"]),
        )
    except (KeyError, ValueError):
        raise ValueError("Invalid token claims")
