from __future__ import annotations

import secrets
import time
from collections import defaultdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from postgrest.exceptions import APIError

from cueboard.auth import TenantScope
from cueboard.auth.permissions import POS_READ, POS_WRITE
from cueboard.auth.scope import require_scope_permission
from cueboard.db import supabase
from cueboard.models.pos import OrderCreate, OrderResponse
from cueboard.observability import incr_metric, log_event, request_id_of
from cueboard.routers.inventory import stock_error_to_http


router = APIRouter(prefix="/api/pos", tags=["pos"])


def generate_order_number() -> str:
    millis = int(time.time() * 1000) % 1_000_000
    return f"POS-{millis:06d}{secrets.randbelow(1000):03d}"


def _attach_items(orders: list[dict[str, Any]]) -> list[dict[str, Any]]:
    if not orders:
        return []
    lines = supabase.table("pos_order_items").select("*").in_(
        "order_id", [order["id"] for order in orders]
    ).execute().data
    by_order: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for line in lines:
        by_order[line["order_id"]].append(line)
    return [{**order, "items": by_order.get(order["id"], [])} for order in orders]


def _load_items(scope: TenantScope, item_ids: list[str]) -> dict[str, dict[str, Any]]:
    result = supabase.table("inventory_items").select("*").eq(
        "company_id", scope.company_id
    ).in_("id", item_ids).execute()
    return {row["id"]: row for row in result.data}


def _ensure_table_session(scope: TenantScope, table_session_id: str) -> None:
    result = supabase.table("table_sessions").select("id").eq(
        "id", table_session_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Table session not found")


@router.get("/orders", response_model=list[OrderResponse])
async def list_orders(
    limit: int = Query(50, ge=1, le=200),
    scope: TenantScope = Depends(require_scope_permission(POS_READ)),
):
    """Most recent orders first."""
    orders = supabase.table("pos_orders").select("*").eq(
        "company_id", scope.company_id
    ).order("created_at", desc=True).limit(limit).execute().data
    return _attach_items(orders)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    scope: TenantScope = Depends(require_scope_permission(POS_READ)),
):
    result = supabase.table("pos_orders").select("*").eq(
        "id", order_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return _attach_items(result.data)[0]


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    data: OrderCreate,
    request: Request,
    scope: TenantScope = Depends(require_scope_permission(POS_WRITE)),
):
    """Sell inventory items.

    Prices come from the stored items, never from the client. The order, its
    lines, the stock decrements and the OUTGOING inventory transactions are
    written by one database function, so either all of them land or none do.
    """
    requested: dict[str, int] = defaultdict(int)
    for line in data.items:
        requested[line.item_id] += line.quantity

    items = _load_items(scope, list(requested))
    for item_id, quantity in requested.items():
        item = items.get(item_id)
        if item is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Item not found: {item_id}")
        if item["quantity"] < quantity:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "Insufficient stock", "item_id": item_id, "available": item["quantity"]},
            )

    if data.table_session_id:
        _ensure_table_session(scope, data.table_session_id)

    try:
        result = supabase.rpc("create_pos_order", {
            "p_company_id": scope.company_id,
            "p_staff_id": scope.principal.profile_id,
            "p_table_session_id": data.table_session_id,
            "p_order_number": generate_order_number(),
            "p_paid_amount": data.paid_amount,
            "p_lines": [{"item_id": item_id, "quantity": quantity} for item_id, quantity in requested.items()],
        }).execute()
    except APIError as exc:
        error = stock_error_to_http(exc)
        if error is None:
            raise
        raise error from exc
    order = result.data

    incr_metric("pos.orders.created")
    log_event(
        "pos_order_created",
        request_id=request_id_of(request),
        company_id=scope.company_id,
        order_id=order["id"],
        order_number=order["order_number"],
        line_count=len(order["items"]),
        total_amount=order["total_amount"],
    )
    return order
