import logging

from fastapi import Depends, Header, HTTPException, Request, status
from postgrest.exceptions import APIError

from cueboard.auth.context import Principal
from cueboard.auth.cookies import read_access_token
from cueboard.auth.jwt import decode_access_token
from cueboard.auth.permissions import Role, role_at_least
from cueboard.db import supabase
from cueboard.domain.store_errors import TenantStoreUnavailable
from cueboard.observability import incr_metric, log_event, request_id_of

# Postgres rejects malformed uuids with this code; such an id cannot exist.
INVALID_TEXT_REPRESENTATION = "22P02"

STORE_UNAVAILABLE_DETAIL = {
    "type": "tenant_store_unavailable",
    "retryable": True,
    "message": "Company lookup failed, retry the request",
}


def _extract_bearer_token(authorization: str | None) -> str | None:
    """Extract token from 'Bearer <token>' header."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def fetch_company(company_id: str) -> dict | None:
    """Read one company row. None when it does not exist.

    Every other store failure surfaces as TenantStoreUnavailable.
    """
    try:
        result = supabase.table("companies").select("id, name, active").eq("id", company_id).execute()
    except APIError as exc:
        if exc.code == INVALID_TEXT_REPRESENTATION:
            return None
        raise TenantStoreUnavailable(str(exc)) from exc
    except Exception as exc:
        raise TenantStoreUnavailable(str(exc)) from exc
    return result.data[0] if result.data else None


def store_unavailable_error(request: Request, exc: TenantStoreUnavailable, **fields) -> HTTPException:
    incr_metric("tenant_scope.store_unavailable")
    log_event(
        "tenant_scope_store_unavailable",
        level=logging.ERROR,
        request_id=request_id_of(request),
        error=str(exc),
        **fields,
    )
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=dict(STORE_UNAVAILABLE_DETAIL),
    )


def _company_is_active(company_id: str) -> bool:
    company = fetch_company(company_id)
    if company is None:
        return False
    return bool(company.get("active", True))


def load_principal(user_id: str, email: str | None = None) -> Principal | None:
    """Load the persisted role and company assignment for an identity.

    Returns None for unknown or deactivated profiles. An assignment to a
    deactivated company is dropped, so the principal resolves as unassigned
    until a superadmin reactivates or reassigns it.
    """
    try:
        result = supabase.table("profiles").select(
            "id, user_id, email, role, company_id, active"
        ).eq("user_id", user_id).execute()
    except Exception as exc:
        raise TenantStoreUnavailable(str(exc)) from exc
    if not result.data:
        return None
    profile = result.data[0]
    if profile.get("active") is False:
        return None

    company_id = profile.get("company_id")
    if company_id and not _company_is_active(company_id):
        company_id = None

    return Principal(
        id=user_id,
        role=profile.get("role"),
        assigned_company_id=company_id,
        profile_id=profile["id"],
        email=profile.get("email") or email,
    )


async def get_current_principal(
    request: Request,
    authorization: str | None = Header(None),
) -> Principal:
    """
    Bearer token first, then the Supabase session cookie.
    The role always comes from the profile row, never from token claims.
    """
    token = _extract_bearer_token(authorization) or read_access_token(request.cookies)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    try:
        principal = load_principal(payload["sub"], payload.get("email"))
    except TenantStoreUnavailable as exc:
        raise store_unavailable_error(request, exc, principal_id=payload["sub"]) from exc
    if not principal:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile not found or inactive",
        )
    return principal


async def get_current_super_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role is not Role.SUPERADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Superadmin role required",
        )
    return principal


def require_role(minimum: Role):
    async def _require(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not role_at_least(principal.role, minimum):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{minimum.value} role required",
            )
        return principal

    return _require


def has_permission(principal: Principal, permission_key: str) -> bool:
    return permission_key in principal.permissions
