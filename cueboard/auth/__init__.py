from cueboard.auth.context import Principal, TenantScope
from cueboard.auth.dependencies import (
    get_current_principal,
    get_current_super_admin,
    require_role,
)
from cueboard.auth.permissions import Role

__all__ = [
    "Principal",
    "TenantScope",
    "Role",
    "get_current_principal",
    "get_current_super_admin",
    "require_role",
]
