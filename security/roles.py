"""
ROLE DEFINITIONS

Define dashboard roles and their access scopes.

Rules:
- No imports outside typing
- No logic, only declarations
- Roles must be explicit strings
- Used by access_guard.py
"""

from typing import Literal

# Role definitions
ADMIN: Literal["ADMIN"] = "ADMIN"
OPERATOR: Literal["OPERATOR"] = "OPERATOR"
VIEWER: Literal["VIEWER"] = "VIEWER"
SYSTEM: Literal["SYSTEM"] = "SYSTEM"

# Access scope definitions
DELIVERY_UNIT: Literal["DELIVERY_UNIT"] = "DELIVERY_UNIT"
GLOBAL: Literal["GLOBAL"] = "GLOBAL"

# Role to scope mapping (an unbound actor is GLOBAL whatever the role)
ROLE_SCOPE_MAP: dict[str, str] = {
    ADMIN: GLOBAL,
    SYSTEM: GLOBAL,
    OPERATOR: DELIVERY_UNIT,
    VIEWER: DELIVERY_UNIT,
}

# Roles allowed to delete notes written by someone else
NOTE_MODERATOR_ROLES: list[str] = [
    ADMIN,
    SYSTEM,
]

ALL_ROLES: list[str] = [
    ADMIN,
    OPERATOR,
    VIEWER,
    SYSTEM,
]
