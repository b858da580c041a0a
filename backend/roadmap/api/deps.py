from __future__ import annotations

import uuid
from dataclasses import dataclass

from fastapi import HTTPException, Request

from roadmap.core.security import decode_access_token


@dataclass(frozen=True)
class Caller:
    """Identity of the authenticated caller as asserted by the bearer token."""

    id: uuid.UUID
    role: str


async def get_current_caller(request: Request) -> Caller:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload = decode_access_token(auth[7:])
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        caller_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token subject")
    return Caller(id=caller_id, role=str(payload.get("role", "user")))
