from fastapi import APIRouter, Depends, Header, Query, Request
from cueboard.auth import Principal, get_current_principal
from cueboard.auth.scope import resolve_for_request
from cueboard.domain.tenant_scope import ScopeDenied
from cueboard.models.auth import MeResponse, ScopeResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
async def get_me(principal: Principal = Depends(get_current_principal)):
    """Current identity as loaded from the profile store."""
    return MeResponse(
        user_id=principal.id,
        profile_id=principal.profile_id,
        email=principal.email,
        role=principal.role,
        company_id=principal.assigned_company_id,
        permissions=list(principal.permissions),
    )


@router.get("/scope", response_model=ScopeResponse)
async def get_scope(
    request: Request,
    company_id: str | None = Query(None),
    x_company_id: str | None = Header(None),
    principal: Principal = Depends(get_current_principal),
):
    """Report which company this request would be scoped to, without failing."""
    result = resolve_for_request(request, principal, company_id or x_company_id)
    if isinstance(result, ScopeDenied):
        if result.recoverable:
            return ScopeResponse(status="selection_required", reason=result.reason.value)
        return ScopeResponse(status="denied", reason=result.reason.value)
    return ScopeResponse(status="allowed", company_id=result.company_id)
