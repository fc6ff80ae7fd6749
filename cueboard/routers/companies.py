from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from cueboard.auth import Principal, TenantScope, get_current_principal, get_current_super_admin
from cueboard.auth.permissions import is_elevated
from cueboard.auth.scope import denial_to_http, get_tenant_scope, resolve_for_request
from cueboard.config import settings
from cueboard.db import supabase
from cueboard.domain.tenant_scope import ScopeDenied
from cueboard.models.companies import (
    CompanyResponse,
    CompanySelectionResponse,
    JoinRequestCreate,
    JoinRequestResponse,
)
from cueboard.observability import log_event, request_id_of

router = APIRouter(prefix="/api/companies", tags=["companies"])

COMPANY_FIELDS = "id, name, address, phone, timezone, active, created_at, updated_at"


def _get_active_company(company_id: str) -> dict | None:
    result = supabase.table("companies").select(COMPANY_FIELDS).eq(
        "id", company_id
    ).eq("active", True).execute()
    if not result.data:
        return None
    return result.data[0]


@router.get("/available", response_model=list[CompanyResponse])
async def list_available_companies(principal: Principal = Depends(get_current_principal)):
    """Companies the caller may pick from. Superadmins see every active company."""
    if is_elevated(principal.role):
        result = supabase.table("companies").select(COMPANY_FIELDS).eq(
            "active", True
        ).order("name").execute()
        return result.data

    if not principal.assigned_company_id:
        return []
    company = _get_active_company(principal.assigned_company_id)
    return [company] if company else []


@router.get("/current", response_model=CompanyResponse)
async def get_current_company(scope: TenantScope = Depends(get_tenant_scope)):
    company = _get_active_company(scope.company_id)
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company


@router.post("/{company_id}/select", response_model=CompanySelectionResponse)
async def select_company(
    company_id: str,
    request: Request,
    response: Response,
    principal: Principal = Depends(get_current_super_admin),
):
    """Remember a superadmin's company choice in a cookie.

    The cookie is only a default for later requests; every request is
    re-resolved against the company store.
    """
    result = resolve_for_request(request, principal, company_id)
    if isinstance(result, ScopeDenied):
        raise denial_to_http(result)

    company = _get_active_company(result.company_id)
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    response.set_cookie(
        key=settings.company_cookie_name,
        value=result.company_id,
        max_age=settings.company_cookie_max_age_seconds,
        httponly=True,
        secure=settings.company_cookie_secure,
        samesite="lax",
    )
    log_event(
        "company_selected",
        request_id=request_id_of(request),
        principal_id=principal.id,
        company_id=result.company_id,
    )
    return CompanySelectionResponse(company=company)


@router.delete("/selection", status_code=status.HTTP_204_NO_CONTENT)
async def clear_company_selection(
    response: Response,
    principal: Principal = Depends(get_current_principal),
):
    response.delete_cookie(key=settings.company_cookie_name)
    return None


@router.post("/join-request", response_model=JoinRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_join_request(
    data: JoinRequestCreate,
    request: Request,
    principal: Principal = Depends(get_current_principal),
):
    """Ask to be assigned to a company. Only for principals without one."""
    if principal.assigned_company_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Already assigned to a company",
        )

    if not _get_active_company(data.company_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    existing = supabase.table("company_join_requests").select("id").eq(
        "user_id", principal.id
    ).eq("company_id", data.company_id).eq("status", "pending").execute()
    if existing.data:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A pending request for this company already exists",
        )

    result = supabase.table("company_join_requests").insert({
        "user_id": principal.id,
        "company_id": data.company_id,
        "message": data.message,
        "status": "pending",
    }).execute()

    log_event(
        "company_join_requested",
        request_id=request_id_of(request),
        principal_id=principal.id,
        company_id=data.company_id,
    )
    return result.data[0]
