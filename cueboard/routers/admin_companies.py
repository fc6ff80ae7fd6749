from collections import Counter
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from cueboard.auth import Principal, get_current_super_admin
from cueboard.db import supabase
from cueboard.models.companies import (
    CompanyAdminResponse,
    CompanyCreate,
    CompanyListResponse,
    CompanyResponse,
    CompanyUpdate,
    Pagination,
)
from cueboard.observability import incr_metric, log_event, request_id_of

router = APIRouter(prefix="/api/admin/companies", tags=["admin"])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_company(company_id: str) -> dict:
    result = supabase.table("companies").select("*").eq("id", company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return result.data[0]


def _user_counts(company_ids: list[str]) -> Counter[str]:
    if not company_ids:
        return Counter()
    result = supabase.table("profiles").select("company_id").in_("company_id", company_ids).execute()
    return Counter(row["company_id"] for row in result.data)


def _set_active(company_id: str, active: bool, principal: Principal, request: Request) -> dict:
    _get_company(company_id)
    result = supabase.table("companies").update({
        "active": active,
        "updated_at": _now_iso(),
    }).eq("id", company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    event = "company_activated" if active else "company_deactivated"
    incr_metric(f"admin.{event}")
    log_event(event, request_id=request_id_of(request), principal_id=principal.id, company_id=company_id)
    return result.data[0]


@router.get("/", response_model=CompanyListResponse)
async def list_companies(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    search: str | None = Query(None),
    principal: Principal = Depends(get_current_super_admin),
):
    """List every company, active or not, with assigned-user counts."""
    count_query = supabase.table("companies").select("id")
    query = supabase.table("companies").select("*")
    if search:
        count_query = count_query.ilike("name", f"%{search}%")
        query = query.ilike("name", f"%{search}%")

    total = len(count_query.execute().data)
    start = (page - 1) * limit
    rows = query.order("name").range(start, start + limit - 1).execute().data

    counts = _user_counts([row["id"] for row in rows])
    companies = [CompanyAdminResponse(**row, user_count=counts.get(row["id"], 0)) for row in rows]
    return CompanyListResponse(
        companies=companies,
        pagination=Pagination(page=page, limit=limit, total=total, pages=-(-total // limit)),
    )


@router.post("/", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    data: CompanyCreate,
    request: Request,
    principal: Principal = Depends(get_current_super_admin),
):
    result = supabase.table("companies").insert(data.model_dump()).execute()
    company = result.data[0]
    log_event("company_created", request_id=request_id_of(request), principal_id=principal.id, company_id=company["id"])
    return company


@router.get("/{company_id}", response_model=CompanyAdminResponse)
async def get_company(company_id: str, principal: Principal = Depends(get_current_super_admin)):
    company = _get_company(company_id)
    counts = _user_counts([company_id])
    return CompanyAdminResponse(**company, user_count=counts.get(company_id, 0))


@router.put("/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: str,
    data: CompanyUpdate,
    principal: Principal = Depends(get_current_super_admin),
):
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    update_data["updated_at"] = _now_iso()
    result = supabase.table("companies").update(update_data).eq("id", company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return result.data[0]


@router.post("/{company_id}/deactivate", response_model=CompanyResponse)
async def deactivate_company(
    company_id: str,
    request: Request,
    principal: Principal = Depends(get_current_super_admin),
):
    """Soft-disable a company. Assigned users lose access on their next request."""
    return _set_active(company_id, False, principal, request)


@router.post("/{company_id}/activate", response_model=CompanyResponse)
async def activate_company(
    company_id: str,
    request: Request,
    principal: Principal = Depends(get_current_super_admin),
):
    return _set_active(company_id, True, principal, request)


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(
    company_id: str,
    request: Request,
    principal: Principal = Depends(get_current_super_admin),
):
    """Hard delete, allowed only while no profile is assigned to the company."""
    _get_company(company_id)
    user_count = _user_counts([company_id]).get(company_id, 0)
    if user_count:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "Cannot delete company with assigned users; deactivate it instead",
                "user_count": user_count,
            },
        )

    supabase.table("companies").delete().eq("id", company_id).execute()
    log_event("company_deleted", request_id=request_id_of(request), principal_id=principal.id, company_id=company_id)
    return None
