from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from cueboard.auth import Principal, Role, require_role
from cueboard.auth.permissions import is_elevated, normalize_role, role_at_least
from cueboard.auth.scope import denial_to_http, resolve_for_request
from cueboard.db import supabase
from cueboard.domain.tenant_scope import ScopeDenied
from cueboard.models.companies import JoinRequestResponse
from cueboard.models.users import ProfileResponse, ProfileUpdate
from cueboard.observability import incr_metric, log_event, request_id_of

router = APIRouter(prefix="/api/admin", tags=["admin"])

PROFILE_FIELDS = "id, user_id, email, first_name, last_name, role, company_id, active, created_at, updated_at"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _managed_company_id(request: Request, principal: Principal) -> str | None:
    """Company an admin may manage; None means unrestricted (superadmin)."""
    if is_elevated(principal.role):
        return None
    result = resolve_for_request(request, principal, None)
    if isinstance(result, ScopeDenied):
        raise denial_to_http(result)
    return result.company_id


def _get_profile(user_id: str, managed_company_id: str | None) -> dict:
    query = supabase.table("profiles").select(PROFILE_FIELDS).eq("user_id", user_id)
    if managed_company_id:
        query = query.eq("company_id", managed_company_id)
    result = query.execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return result.data[0]


def _ensure_company_exists(company_id: str) -> None:
    result = supabase.table("companies").select("id").eq("id", company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")


def _ensure_can_manage(principal: Principal, target: dict) -> None:
    if target["user_id"] == principal.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot modify your own profile")
    if not is_elevated(principal.role) and role_at_least(target["role"], Role.ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Superadmin role required")


def _update_profile(user_id: str, update_data: dict) -> dict:
    update_data["updated_at"] = _now_iso()
    result = supabase.table("profiles").update(update_data).eq("user_id", user_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return result.data[0]


@router.get("/users", response_model=list[ProfileResponse])
async def list_users(
    request: Request,
    company_id: str | None = Query(None),
    include_inactive: bool = Query(False),
    principal: Principal = Depends(require_role(Role.ADMIN)),
):
    """List profiles. Company admins only ever see their own company."""
    managed = _managed_company_id(request, principal)
    if managed and company_id and company_id != managed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    query = supabase.table("profiles").select(PROFILE_FIELDS)
    target_company = managed or company_id
    if target_company:
        query = query.eq("company_id", target_company)
    if not include_inactive:
        query = query.eq("active", True)
    return query.order("email").execute().data


@router.patch("/users/{user_id}", response_model=ProfileResponse)
async def update_user(
    user_id: str,
    data: ProfileUpdate,
    request: Request,
    principal: Principal = Depends(require_role(Role.ADMIN)),
):
    """Change a profile's role or company assignment."""
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    managed = _managed_company_id(request, principal)
    target = _get_profile(user_id, managed)
    _ensure_can_manage(principal, target)

    if "role" in update_data:
        role = normalize_role(update_data["role"])
        if role_at_least(role, Role.ADMIN) and not is_elevated(principal.role):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Superadmin role required")
        update_data["role"] = role.value

    if "company_id" in update_data:
        new_company_id = update_data["company_id"]
        if managed and new_company_id != managed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Superadmin role required")
        if new_company_id:
            _ensure_company_exists(new_company_id)

    profile = _update_profile(user_id, update_data)
    incr_metric("admin.profile_updated", fields=",".join(sorted(k for k in update_data if k != "updated_at")))
    log_event(
        "profile_updated",
        request_id=request_id_of(request),
        principal_id=principal.id,
        target_user_id=user_id,
        role=profile.get("role"),
        company_id=profile.get("company_id"),
    )
    return profile


@router.post("/users/{user_id}/deactivate", response_model=ProfileResponse)
async def deactivate_user(
    user_id: str,
    request: Request,
    principal: Principal = Depends(require_role(Role.ADMIN)),
):
    """Profiles are never deleted; a deactivated profile can no longer authenticate."""
    target = _get_profile(user_id, _managed_company_id(request, principal))
    _ensure_can_manage(principal, target)
    profile = _update_profile(user_id, {"active": False})
    log_event("profile_deactivated", request_id=request_id_of(request), principal_id=principal.id, target_user_id=user_id)
    return profile


@router.post("/users/{user_id}/activate", response_model=ProfileResponse)
async def activate_user(
    user_id: str,
    request: Request,
    principal: Principal = Depends(require_role(Role.ADMIN)),
):
    target = _get_profile(user_id, _managed_company_id(request, principal))
    _ensure_can_manage(principal, target)
    profile = _update_profile(user_id, {"active": True})
    log_event("profile_activated", request_id=request_id_of(request), principal_id=principal.id, target_user_id=user_id)
    return profile


# --- Join requests ---

def _get_pending_request(request_id: str, managed_company_id: str | None) -> dict:
    query = supabase.table("company_join_requests").select("*").eq("id", request_id)
    if managed_company_id:
        query = query.eq("company_id", managed_company_id)
    result = query.execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Join request not found")
    join_request = result.data[0]
    if join_request["status"] != "pending":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Join request already processed")
    return join_request


def _close_request(request_id: str, new_status: str, principal: Principal) -> dict:
    result = supabase.table("company_join_requests").update({
        "status": new_status,
        "reviewed_by": principal.id,
        "reviewed_at": _now_iso(),
    }).eq("id", request_id).execute()
    return result.data[0]


@router.get("/join-requests", response_model=list[JoinRequestResponse])
async def list_join_requests(
    request: Request,
    status_filter: str = Query("pending", alias="status"),
    principal: Principal = Depends(require_role(Role.ADMIN)),
):
    managed = _managed_company_id(request, principal)
    query = supabase.table("company_join_requests").select("*").eq("status", status_filter)
    if managed:
        query = query.eq("company_id", managed)
    return query.order("created_at", desc=True).execute().data


@router.post("/join-requests/{request_id}/approve", response_model=JoinRequestResponse)
async def approve_join_request(
    request_id: str,
    request: Request,
    principal: Principal = Depends(require_role(Role.ADMIN)),
):
    """Assign the requester to the company. A GUEST becomes a USER; higher roles are kept."""
    join_request = _get_pending_request(request_id, _managed_company_id(request, principal))

    target = _get_profile(join_request["user_id"], None)
    if target.get("company_id") and target["company_id"] != join_request["company_id"]:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already belongs to a company")

    update_data = {"company_id": join_request["company_id"]}
    if not role_at_least(target["role"], Role.USER):
        update_data["role"] = Role.USER.value
    _update_profile(join_request["user_id"], update_data)

    closed = _close_request(request_id, "approved", principal)
    log_event(
        "company_join_approved",
        request_id=request_id_of(request),
        principal_id=principal.id,
        target_user_id=join_request["user_id"],
        company_id=join_request["company_id"],
    )
    return closed


@router.post("/join-requests/{request_id}/reject", response_model=JoinRequestResponse)
async def reject_join_request(
    request_id: str,
    request: Request,
    principal: Principal = Depends(require_role(Role.ADMIN)),
):
    join_request = _get_pending_request(request_id, _managed_company_id(request, principal))
    closed = _close_request(request_id, "rejected", principal)
    log_event(
        "company_join_rejected",
        request_id=request_id_of(request),
        principal_id=principal.id,
        target_user_id=join_request["user_id"],
        company_id=join_request["company_id"],
    )
    return closed
