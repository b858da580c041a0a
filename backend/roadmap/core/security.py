"""Bearer token helpers.

Tokens are issued by the surrounding identity service; this module only needs
to read the caller id and role out of them (and mint tokens for tests and
local tooling).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt

from roadmap.config import settings

ALGORITHM = "HS256"
_ISSUER = "roadmap"
_AUDIENCE = "roadmap"


def create_access_token(user_id: uuid.UUID, role: str = "user") -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        "iss": _ISSUER,
        "aud": _AUDIENCE,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Return the token claims, or None when the token is invalid or expired."""
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[ALGORITHM],
            audience=_AUDIENCE,
            issuer=_ISSUER,
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError:
        return None
