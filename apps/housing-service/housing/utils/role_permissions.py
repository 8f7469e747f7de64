"""
Global user roles and what each one may do.

Each user carries one role. The table below is the single place that says
whether a role is bound to its own farm and whether it may administer the
application; routers ask through the helpers instead of comparing role
strings inline.
"""

from typing import Dict, FrozenSet
from enum import Enum


ROLE_SUPERADMIN = "superadmin"
ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLE_PERMISSIONS = {
    ROLE_SUPERADMIN: {"all_farms": True, "administer": True},
    ROLE_ADMIN: {"all_farms": False, "administer": False},
    ROLE_USER: {"all_farms": False, "administer": False},
}

ALLOWED_ROLES = frozenset(ROLE_PERMISSIONS)

# Roles that receive farm-level administrative notifications
FARM_ADMIN_ROLES: FrozenSet[str] = frozenset({ROLE_SUPERADMIN, ROLE_ADMIN})
ANNOUNCEMENT_AUDIENCES: Dict[str, FrozenSet[str]] = {
    "all": ALLOWED_ROLES,
    "users": frozenset({ROLE_USER}),
    "admins": FARM_ADMIN_ROLES,
}


class RoleEnum(str, Enum):
    """Role values accepted by the user schemas."""
    superadmin = ROLE_SUPERADMIN
    admin = ROLE_ADMIN
    user = ROLE_USER


def audience_roles(audience: str) -> FrozenSet[str]:
    """Roles targeted by an announcement audience (`all`, `users`, `admins`)."""
    if audience not in ANNOUNCEMENT_AUDIENCES:
        raise ValueError(f"Unknown audience: {audience}. Allowed: {sorted(ANNOUNCEMENT_AUDIENCES)}")
    return ANNOUNCEMENT_AUDIENCES[audience]


def role_sees_all_farms(role: str) -> bool:
    """Return True if the role is not restricted to its own farm."""
    return bool(ROLE_PERMISSIONS.get(role, {}).get("all_farms"))


def role_can_administer(role: str) -> bool:
    """Superadmin surfaces: farms, users, security codes, audits, maintenance."""
    return bool(ROLE_PERMISSIONS.get(role, {}).get("administer"))


def role_is_farm_admin(role: str) -> bool:
    return role in FARM_ADMIN_ROLES
