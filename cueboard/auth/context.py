from dataclasses import dataclass
from cueboard.auth.permissions import Role, normalize_role, permissions_for_role


@dataclass
class Principal:
    """Authenticated identity with its persisted role and company assignment."""
    id: str
    role: Role
    assigned_company_id: str | None = None
    profile_id: str | None = None
    email: str | None = None
    permissions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Explicit permissions can only narrow the role bundle.
        self.role = normalize_role(self.role)
        granted = permissions_for_role(self.role)
        if self.permissions:
            granted &= set(self.permissions)
        self.permissions = tuple(sorted(granted))


@dataclass(frozen=True)
class TenantScope:
    """The single company a request is authorized to read and write."""
    principal: Principal
    company_id: str
