from __future__ import annotations

from enum import Enum
from typing import Final


class Role(str, Enum):
    GUEST = "GUEST"
    USER = "USER"
    STAFF = "STAFF"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"


ROLE_RANK: Final[dict[Role, int]] = {
    Role.GUEST: 0,
    Role.USER: 1,
    Role.STAFF: 2,
    Role.ADMIN: 3,
    Role.SUPERADMIN: 4,
}

# Spellings found in older profile rows and identity-provider metadata.
LEGACY_ROLE_ALIASES: Final[dict[str, Role]] = {
    "SELLER": Role.STAFF,
    "EMPLOYEE": Role.STAFF,
    "SUPER_ADMIN": Role.SUPERADMIN,
    "SUPER-ADMIN": Role.SUPERADMIN,
}

INVENTORY_READ: Final[str] = "inventory.read"
INVENTORY_WRITE: Final[str] = "inventory.write"
TABLES_READ: Final[str] = "tables.read"
TABLES_OPERATE: Final[str] = "tables.operate"
TABLES_WRITE: Final[str] = "tables.write"
RESERVATIONS_WRITE: Final[str] = "reservations.write"
POS_READ: Final[str] = "pos.read"
POS_WRITE: Final[str] = "pos.write"
FINANCE_READ: Final[str] = "finance.read"
FINANCE_WRITE: Final[str] = "finance.write"
ANALYTICS_READ: Final[str] = "analytics.read"
USERS_MANAGE: Final[str] = "users.manage"
JOIN_REQUESTS_REVIEW: Final[str] = "join_requests.review"
COMPANIES_MANAGE: Final[str] = "companies.manage"
METRICS_READ: Final[str] = "metrics.read"

_USER_PERMISSIONS: Final[frozenset[str]] = frozenset({INVENTORY_READ, TABLES_READ, POS_READ, RESERVATIONS_WRITE})
_STAFF_PERMISSIONS: Final[frozenset[str]] = _USER_PERMISSIONS | {POS_WRITE, TABLES_OPERATE, FINANCE_READ, ANALYTICS_READ}
_ADMIN_PERMISSIONS: Final[frozenset[str]] = _STAFF_PERMISSIONS | {
    INVENTORY_WRITE,
    TABLES_WRITE,
    FINANCE_WRITE,
    USERS_MANAGE,
    JOIN_REQUESTS_REVIEW,
}

ROLE_PERMISSION_BUNDLES: Final[dict[Role, frozenset[str]]] = {
    Role.GUEST: frozenset(),
    Role.USER: _USER_PERMISSIONS,
    Role.STAFF: _STAFF_PERMISSIONS,
    Role.ADMIN: _ADMIN_PERMISSIONS,
    Role.SUPERADMIN: _ADMIN_PERMISSIONS | {COMPANIES_MANAGE, METRICS_READ},
}


def normalize_role(role: Role | str | None) -> Role:
    """Map any stored or claimed role value onto the closed Role enum.

    Unknown, empty or garbled values fall back to USER.
    """
    if isinstance(role, Role):
        return role
    raw = (role or "").strip().upper()
    if raw in LEGACY_ROLE_ALIASES:
        return LEGACY_ROLE_ALIASES[raw]
    try:
        return Role(raw)
    except ValueError:
        return Role.USER


def role_at_least(role: Role | str | None, minimum: Role) -> bool:
    return ROLE_RANK[normalize_role(role)] >= ROLE_RANK[minimum]


def is_elevated(role: Role | str | None) -> bool:
    """Only a superadmin may operate across companies."""
    return normalize_role(role) is Role.SUPERADMIN


def permissions_for_role(role: Role | str | None) -> set[str]:
    return set(ROLE_PERMISSION_BUNDLES[normalize_role(role)])


def role_has_permission(role: Role | str | None, permission_key: str) -> bool:
    return permission_key in ROLE_PERMISSION_BUNDLES[normalize_role(role)]
