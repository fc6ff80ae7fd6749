import logging

from fastapi import Depends, Header, HTTPException, Query, Request, status

from cueboard.auth.context import Principal, TenantScope
from cueboard.auth.dependencies import (
    fetch_company,
    get_current_principal,
    has_permission,
    store_unavailable_error,
)
from cueboard.config import settings
from cueboard.domain.tenant_scope import (
    CompanySnapshot,
    DenialReason,
    ScopeDenied,
    ScopeResult,
    TenantStoreUnavailable,
    resolve_tenant_scope,
    select_requested_company,
)
from cueboard.observability import incr_metric, log_event, request_id_of

SELECTION_REQUIRED_DETAIL = {
    "code": "company_selection_required",
    "message": "Select a company to continue",
    "available_companies_url": "/api/companies/available",
}


def lookup_company(company_id: str) -> CompanySnapshot | None:
    row = fetch_company(company_id)
    if row is None:
        return None
    return CompanySnapshot(id=row["id"], name=row.get("name"), active=bool(row.get("active", True)))


def remembered_company_id(request: Request) -> str | None:
    return request.cookies.get(settings.company_cookie_name) or None


def resolve_for_request(
    request: Request,
    principal: Principal,
    explicit_company_id: str | None,
) -> ScopeResult:
    """Run the resolver for one request and record the decision."""
    requested = select_requested_company(principal, explicit_company_id, remembered_company_id(request))
    request_id = request_id_of(request)
    try:
        result = resolve_tenant_scope(principal, requested, lookup_company=lookup_company)
    except TenantStoreUnavailable as exc:
        raise store_unavailable_error(
            request,
            exc,
            principal_id=principal.id,
            requested_company_id=requested,
        ) from exc

    if isinstance(result, ScopeDenied):
        incr_metric("tenant_scope.denied", reason=result.reason.value, role=principal.role.value)
        log_event(
            "tenant_scope_denied",
            level=logging.INFO if result.recoverable else logging.WARNING,
            request_id=request_id,
            principal_id=principal.id,
            role=principal.role.value,
            reason=result.reason.value,
            requested_company_id=requested,
        )
    else:
        incr_metric("tenant_scope.resolved", role=principal.role.value)
    return result


def denial_to_http(denial: ScopeDenied) -> HTTPException:
    reason = denial.reason
    if reason is DenialReason.NO_TENANT_SELECTED:
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=dict(SELECTION_REQUIRED_DETAIL))
    if reason is DenialReason.TENANT_NOT_FOUND:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    if reason is DenialReason.TENANT_INACTIVE:
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Company is inactive")
    # Non-elevated denials stay generic so they reveal nothing about other companies.
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


async def get_tenant_scope(
    request: Request,
    company_id: str | None = Query(None),
    x_company_id: str | None = Header(None),
    principal: Principal = Depends(get_current_principal),
) -> TenantScope:
    """Resolve the effective company for this request or raise the mapped denial."""
    result = resolve_for_request(request, principal, company_id or x_company_id)
    if isinstance(result, ScopeDenied):
        raise denial_to_http(result)
    return TenantScope(principal=principal, company_id=result.company_id)


def require_scope_permission(permission_key: str):
    async def _require(scope: TenantScope = Depends(get_tenant_scope)) -> TenantScope:
        if not has_permission(scope.principal, permission_key):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission required: {permission_key}",
            )
        return scope

    return _require
