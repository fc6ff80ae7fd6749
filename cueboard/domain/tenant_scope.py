"""Deciding which company a request may operate on.

``resolve_tenant_scope`` is a pure decision over the principal's role and
assignment plus an optional requested company id. It reads the company store
at most once, and only when a superadmin names a company explicitly. Denials
are returned as values; only a failing store read raises.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from cueboard.auth.permissions import Role, is_elevated, normalize_role
from cueboard.domain.store_errors import TenantStoreUnavailable

__all__ = [
    "CompanyLookup",
    "CompanySnapshot",
    "DenialReason",
    "ScopeAllowed",
    "ScopeDenied",
    "ScopeResult",
    "ScopedPrincipal",
    "TenantStoreUnavailable",
    "resolve_tenant_scope",
    "select_requested_company",
]


class DenialReason(str, Enum):
    NO_TENANT_ASSIGNED = "NO_TENANT_ASSIGNED"
    FORBIDDEN_CROSS_TENANT = "FORBIDDEN_CROSS_TENANT"
    TENANT_NOT_FOUND = "TENANT_NOT_FOUND"
    TENANT_INACTIVE = "TENANT_INACTIVE"
    NO_TENANT_SELECTED = "NO_TENANT_SELECTED"


class ScopedPrincipal(Protocol):
    @property
    def role(self) -> Role | str | None: ...

    @property
    def assigned_company_id(self) -> str | None: ...


@dataclass(frozen=True)
class CompanySnapshot:
    id: str
    active: bool
    name: str | None = None


@dataclass(frozen=True)
class ScopeAllowed:
    company_id: str
    allowed: bool = True


@dataclass(frozen=True)
class ScopeDenied:
    reason: DenialReason
    allowed: bool = False

    @property
    def recoverable(self) -> bool:
        return self.reason is DenialReason.NO_TENANT_SELECTED


ScopeResult = ScopeAllowed | ScopeDenied
CompanyLookup = Callable[[str], "CompanySnapshot | None"]


def resolve_tenant_scope(
    principal: ScopedPrincipal,
    requested_company_id: str | None = None,
    *,
    lookup_company: CompanyLookup,
) -> ScopeResult:
    """Return the company the request is authorized against, or why not.

    ``lookup_company`` returns a snapshot or None when the company does not
    exist, and raises TenantStoreUnavailable when the store cannot answer.
    """
    assigned = principal.assigned_company_id or None
    requested = requested_company_id or None

    if not is_elevated(principal.role):
        if assigned is None:
            return ScopeDenied(DenialReason.NO_TENANT_ASSIGNED)
        if requested is not None and requested != assigned:
            return ScopeDenied(DenialReason.FORBIDDEN_CROSS_TENANT)
        return ScopeAllowed(assigned)

    if requested is not None:
        company = lookup_company(requested)
        if company is None:
            return ScopeDenied(DenialReason.TENANT_NOT_FOUND)
        if not company.active:
            return ScopeDenied(DenialReason.TENANT_INACTIVE)
        return ScopeAllowed(requested)

    if assigned is not None:
        return ScopeAllowed(assigned)
    return ScopeDenied(DenialReason.NO_TENANT_SELECTED)


def select_requested_company(
    principal: ScopedPrincipal,
    explicit_company_id: str | None,
    remembered_company_id: str | None,
) -> str | None:
    """Pick the candidate company id to hand to the resolver.

    An explicit request always wins. The remembered selection only stands in
    for a superadmin who has no home company; everyone else ignores it, so a
    stale value can never turn into a denial or override an assignment.
    """
    if explicit_company_id:
        return explicit_company_id
    if normalize_role(principal.role) is Role.SUPERADMIN and not principal.assigned_company_id:
        return remembered_company_id or None
    return None
