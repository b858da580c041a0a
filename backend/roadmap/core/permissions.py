"""Role registry: single source of truth for caller roles."""

from __future__ import annotations

import enum


class Role(str, enum.Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    OWNER = "owner"
    USER = "user"


# Hierarchy: user < owner < admin < superadmin. Elevated roles bypass the
# product ownership / lifecycle gate.
ELEVATED_ROLES: frozenset[str] = frozenset({Role.ADMIN.value, Role.SUPERADMIN.value})


def is_elevated(role: str | Role | None) -> bool:
    if role is None:
        return False
    value = role.value if isinstance(role, Role) else str(role)
    return value.strip().lower() in ELEVATED_ROLES
