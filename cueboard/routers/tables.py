from datetime import date, datetime, timedelta, timezone
from typing import Any
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from cueboard.auth import TenantScope
from cueboard.auth.permissions import RESERVATIONS_WRITE, TABLES_OPERATE, TABLES_READ, TABLES_WRITE
from cueboard.auth.scope import require_scope_permission
from cueboard.db import supabase
from cueboard.domain.analytics import start_of_day, usage_buckets, usage_windows
from cueboard.domain.table_sessions import parse_timestamp, session_cost, session_duration_minutes, windows_overlap
from cueboard.models.tables import (
    ActivityLogResponse,
    MaintenanceCreate,
    MaintenanceResponse,
    ReservationCreate,
    ReservationResponse,
    ReservationStatus,
    ReservationUpdate,
    SessionEnd,
    SessionStart,
    TableCreate,
    TableResponse,
    TableSessionResponse,
    TableStatsResponse,
    TableUpdate,
)
from cueboard.observability import incr_metric, log_event, request_id_of

router = APIRouter(prefix="/api/tables", tags=["tables"])


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _get_table(scope: TenantScope, table_id: str) -> dict:
    result = supabase.table("tables").select("*").eq(
        "id", table_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Table not found")
    return result.data[0]


def _active_session(scope: TenantScope, table_id: str) -> dict | None:
    result = supabase.table("table_sessions").select("*").eq(
        "company_id", scope.company_id
    ).eq("table_id", table_id).is_("ended_at", "null").execute()
    return result.data[0] if result.data else None


def _set_table_status(scope: TenantScope, table_id: str, table_status: str) -> None:
    supabase.table("tables").update({
        "status": table_status,
        "updated_at": _now().isoformat(),
    }).eq("id", table_id).eq("company_id", scope.company_id).execute()


def _log_activity(
    scope: TenantScope,
    action: str,
    entity_id: str,
    metadata: dict[str, Any],
    entity_type: str = "TABLE_SESSION",
) -> None:
    supabase.table("table_activity_log").insert({
        "company_id": scope.company_id,
        "user_id": scope.principal.profile_id,
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "metadata": metadata,
    }).execute()


@router.get("/", response_model=list[TableResponse])
async def list_tables(scope: TenantScope = Depends(require_scope_permission(TABLES_READ))):
    result = supabase.table("tables").select("*").eq(
        "company_id", scope.company_id
    ).order("name").execute()
    return result.data


@router.post("/", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
async def create_table(
    data: TableCreate,
    scope: TenantScope = Depends(require_scope_permission(TABLES_WRITE)),
):
    result = supabase.table("tables").insert({
        "company_id": scope.company_id,
        **data.model_dump(),
    }).execute()
    return result.data[0]


@router.get("/sessions/active", response_model=list[TableSessionResponse])
async def list_active_sessions(scope: TenantScope = Depends(require_scope_permission(TABLES_READ))):
    result = supabase.table("table_sessions").select("*").eq(
        "company_id", scope.company_id
    ).is_("ended_at", "null").order("started_at").execute()
    return result.data


@router.get("/activity", response_model=list[ActivityLogResponse])
async def list_activity(
    limit: int = Query(50, ge=1, le=200),
    scope: TenantScope = Depends(require_scope_permission(TABLES_READ)),
):
    result = supabase.table("table_activity_log").select("*").eq(
        "company_id", scope.company_id
    ).order("created_at", desc=True).limit(limit).execute()
    return result.data


# --- Reservations ---

def _get_reservation(scope: TenantScope, reservation_id: str) -> dict:
    result = supabase.table("table_reservations").select("*").eq(
        "id", reservation_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")
    return result.data[0]


def _ensure_no_conflict(
    scope: TenantScope,
    table_id: str,
    reserved_from: datetime,
    reserved_to: datetime,
    exclude_id: str | None = None,
) -> None:
    if reserved_to <= reserved_from:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="reserved_to must be after reserved_from")

    existing = supabase.table("table_reservations").select("id, reserved_from, reserved_to").eq(
        "company_id", scope.company_id
    ).eq("table_id", table_id).neq("status", "CANCELLED").execute().data
    conflicts = [
        row["id"] for row in existing
        if row["id"] != exclude_id
        and windows_overlap(reserved_from, reserved_to, row["reserved_from"], row["reserved_to"])
    ]
    if conflicts:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "Table is already reserved for this time", "conflicts": conflicts},
        )


@router.get("/reservations", response_model=list[ReservationResponse])
async def list_reservations(
    table_id: str | None = Query(None),
    reservation_status: ReservationStatus | None = Query(None, alias="status"),
    on: date | None = Query(None, alias="date"),
    scope: TenantScope = Depends(require_scope_permission(TABLES_READ)),
):
    query = supabase.table("table_reservations").select("*").eq("company_id", scope.company_id)
    if table_id:
        query = query.eq("table_id", table_id)
    if reservation_status:
        query = query.eq("status", reservation_status)
    if on:
        day_start = start_of_day(on)
        query = query.gte("reserved_from", day_start.isoformat()).lt(
            "reserved_from", (day_start + timedelta(days=1)).isoformat()
        )
    return query.order("reserved_from").execute().data


@router.post("/reservations", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    data: ReservationCreate,
    request: Request,
    scope: TenantScope = Depends(require_scope_permission(RESERVATIONS_WRITE)),
):
    """Book a table. Overlapping bookings that are not cancelled are a conflict."""
    table = _get_table(scope, data.table_id)
    reserved_from = parse_timestamp(data.reserved_from)
    reserved_to = parse_timestamp(data.reserved_to)
    if data.status != "CANCELLED":
        _ensure_no_conflict(scope, data.table_id, reserved_from, reserved_to)

    reservation = supabase.table("table_reservations").insert({
        "company_id": scope.company_id,
        "table_id": data.table_id,
        "customer_name": data.customer_name,
        "customer_phone": data.customer_phone,
        "reserved_from": reserved_from.isoformat(),
        "reserved_to": reserved_to.isoformat(),
        "status": data.status,
        "created_by": scope.principal.profile_id,
    }).execute().data[0]

    _log_activity(
        scope,
        "RESERVATION_CREATED",
        reservation["id"],
        {"table_id": data.table_id, "table_name": table["name"], "customer_name": data.customer_name},
        entity_type="TABLE_RESERVATION",
    )
    incr_metric("tables.reservations.created")
    log_event(
        "table_reservation_created",
        request_id=request_id_of(request),
        company_id=scope.company_id,
        table_id=data.table_id,
        reservation_id=reservation["id"],
    )
    return reservation


@router.get("/reservations/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: str,
    scope: TenantScope = Depends(require_scope_permission(TABLES_READ)),
):
    return _get_reservation(scope, reservation_id)


@router.patch("/reservations/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    reservation_id: str,
    data: ReservationUpdate,
    scope: TenantScope = Depends(require_scope_permission(RESERVATIONS_WRITE)),
):
    """Change status, customer or times; the new window is re-checked unless cancelled."""
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    reservation = _get_reservation(scope, reservation_id)
    reserved_from = parse_timestamp(update_data.get("reserved_from") or reservation["reserved_from"])
    reserved_to = parse_timestamp(update_data.get("reserved_to") or reservation["reserved_to"])
    new_status = update_data.get("status") or reservation["status"]
    if new_status != "CANCELLED":
        _ensure_no_conflict(scope, reservation["table_id"], reserved_from, reserved_to, exclude_id=reservation_id)

    if "reserved_from" in update_data:
        update_data["reserved_from"] = reserved_from.isoformat()
    if "reserved_to" in update_data:
        update_data["reserved_to"] = reserved_to.isoformat()
    update_data["updated_at"] = _now().isoformat()
    result = supabase.table("table_reservations").update(update_data).eq(
        "id", reservation_id
    ).eq("company_id", scope.company_id).execute()

    _log_activity(
        scope,
        "RESERVATION_UPDATED",
        reservation_id,
        {"table_id": reservation["table_id"], "previous_status": reservation["status"], "status": new_status},
        entity_type="TABLE_RESERVATION",
    )
    return result.data[0]


@router.delete("/reservations/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reservation(
    reservation_id: str,
    scope: TenantScope = Depends(require_scope_permission(RESERVATIONS_WRITE)),
):
    reservation = _get_reservation(scope, reservation_id)
    supabase.table("table_reservations").delete().eq(
        "id", reservation_id
    ).eq("company_id", scope.company_id).execute()
    _log_activity(
        scope,
        "RESERVATION_DELETED",
        reservation_id,
        {"table_id": reservation["table_id"], "customer_name": reservation["customer_name"]},
        entity_type="TABLE_RESERVATION",
    )
    return None


# --- Maintenance ---

@router.get("/maintenance", response_model=list[MaintenanceResponse])
async def list_maintenance(
    table_id: str | None = Query(None),
    scope: TenantScope = Depends(require_scope_permission(TABLES_READ)),
):
    query = supabase.table("table_maintenance").select("*").eq("company_id", scope.company_id)
    if table_id:
        query = query.eq("table_id", table_id)
    return query.order("maintenance_at", desc=True).execute().data


@router.post("/maintenance", response_model=MaintenanceResponse, status_code=status.HTTP_201_CREATED)
async def record_maintenance(
    data: MaintenanceCreate,
    request: Request,
    scope: TenantScope = Depends(require_scope_permission(TABLES_WRITE)),
):
    """Record maintenance and take the table out of service."""
    table = _get_table(scope, data.table_id)
    if _active_session(scope, data.table_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Table has an active session")

    maintenance = supabase.table("table_maintenance").insert({
        "company_id": scope.company_id,
        "table_id": data.table_id,
        "description": data.description,
        "maintenance_at": parse_timestamp(data.maintenance_at or _now()).isoformat(),
        "cost": data.cost,
        "created_by": scope.principal.profile_id,
    }).execute().data[0]

    _set_table_status(scope, data.table_id, "MAINTENANCE")
    _log_activity(
        scope,
        "MAINTENANCE_SCHEDULED",
        data.table_id,
        {"table_name": table["name"], "maintenance_id": maintenance["id"], "description": data.description},
        entity_type="TABLE",
    )
    incr_metric("tables.maintenance.recorded")
    log_event(
        "table_maintenance_recorded",
        request_id=request_id_of(request),
        company_id=scope.company_id,
        table_id=data.table_id,
        maintenance_id=maintenance["id"],
    )
    return maintenance


@router.get("/{table_id}", response_model=TableResponse)
async def get_table(table_id: str, scope: TenantScope = Depends(require_scope_permission(TABLES_READ))):
    return _get_table(scope, table_id)


@router.put("/{table_id}", response_model=TableResponse)
async def update_table(
    table_id: str,
    data: TableUpdate,
    scope: TenantScope = Depends(require_scope_permission(TABLES_WRITE)),
):
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    update_data["updated_at"] = _now().isoformat()
    result = supabase.table("tables").update(update_data).eq(
        "id", table_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Table not found")
    return result.data[0]


@router.delete("/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_table(table_id: str, scope: TenantScope = Depends(require_scope_permission(TABLES_WRITE))):
    _get_table(scope, table_id)
    if _active_session(scope, table_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Table has an active session")
    supabase.table("tables").delete().eq("id", table_id).eq("company_id", scope.company_id).execute()
    return None


@router.post("/{table_id}/sessions", response_model=TableSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
    table_id: str,
    request: Request,
    data: SessionStart | None = None,
    scope: TenantScope = Depends(require_scope_permission(TABLES_OPERATE)),
):
    table = _get_table(scope, table_id)
    if table.get("status") == "MAINTENANCE":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Table is under maintenance")
    if _active_session(scope, table_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Table already has an active session")

    started_at = (data.started_at if data and data.started_at else _now())
    session = supabase.table("table_sessions").insert({
        "company_id": scope.company_id,
        "table_id": table_id,
        "staff_id": scope.principal.profile_id,
        "started_at": parse_timestamp(started_at).isoformat(),
        "status": "OPEN",
    }).execute().data[0]

    _set_table_status(scope, table_id, "BUSY")
    _log_activity(scope, "START_SESSION", session["id"], {"table_id": table_id, "table_name": table["name"]})
    incr_metric("tables.sessions.started")
    log_event(
        "table_session_started",
        request_id=request_id_of(request),
        company_id=scope.company_id,
        table_id=table_id,
        session_id=session["id"],
    )
    return session


@router.post("/{table_id}/sessions/end", response_model=TableSessionResponse)
async def end_session(
    table_id: str,
    request: Request,
    data: SessionEnd | None = None,
    scope: TenantScope = Depends(require_scope_permission(TABLES_OPERATE)),
):
    """Close the active session and bill it at the table's hourly rate."""
    table = _get_table(scope, table_id)
    session = _active_session(scope, table_id)
    if not session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active session for this table")

    ended_at = parse_timestamp(data.ended_at if data and data.ended_at else _now())
    try:
        duration = session_duration_minutes(session["started_at"], ended_at)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    cost = session_cost(table.get("hourly_rate"), duration)

    result = supabase.table("table_sessions").update({
        "ended_at": ended_at.isoformat(),
        "duration_min": duration,
        "total_cost": float(cost),
        "status": "CLOSED",
        "updated_at": _now().isoformat(),
    }).eq("id", session["id"]).eq("company_id", scope.company_id).execute()

    _set_table_status(scope, table_id, "AVAILABLE")
    _log_activity(
        scope,
        "END_SESSION",
        session["id"],
        {"table_id": table_id, "table_name": table["name"], "duration": duration, "cost": float(cost)},
    )
    incr_metric("tables.sessions.ended")
    log_event(
        "table_session_ended",
        request_id=request_id_of(request),
        company_id=scope.company_id,
        table_id=table_id,
        session_id=session["id"],
        duration_min=duration,
        total_cost=float(cost),
    )
    return result.data[0]


@router.get("/{table_id}/stats", response_model=TableStatsResponse)
async def get_table_stats(table_id: str, scope: TenantScope = Depends(require_scope_permission(TABLES_READ))):
    """Play hours and revenue of closed sessions: hourly today, daily this week, weekly this month."""
    _get_table(scope, table_id)
    windows = usage_windows(_now().date())
    earliest = min(window[1] for buckets in windows.values() for window in buckets)
    sessions = supabase.table("table_sessions").select(
        "id, started_at, ended_at, duration_min, total_cost"
    ).eq("company_id", scope.company_id).eq("table_id", table_id).gte(
        "ended_at", earliest.isoformat()
    ).order("started_at").execute().data
    return TableStatsResponse(
        table_id=table_id,
        **{period: usage_buckets(sessions, buckets) for period, buckets in windows.items()},
    )
