from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from postgrest.exceptions import APIError
from cueboard.auth import TenantScope
from cueboard.auth.permissions import INVENTORY_READ, INVENTORY_WRITE
from cueboard.auth.scope import require_scope_permission
from cueboard.db import supabase
from cueboard.models.inventory import (
    InventoryCategoryCreate,
    InventoryCategoryResponse,
    InventoryCategoryUpdate,
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    InventoryTransactionResponse,
    StockAdjustment,
    StockAdjustmentResponse,
)
from cueboard.observability import incr_metric, log_event, request_id_of

# SQLSTATEs raised by the stock functions in scripts/create_tables.py.
INSUFFICIENT_STOCK = "CB409"
ITEM_NOT_FOUND = "CB404"

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_category(scope: TenantScope, category_id: str) -> dict:
    result = supabase.table("inventory_categories").select("*").eq(
        "id", category_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return result.data[0]


def get_item(scope: TenantScope, item_id: str) -> dict:
    result = supabase.table("inventory_items").select("*").eq(
        "id", item_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return result.data[0]


def record_transaction(
    scope: TenantScope,
    *,
    item_id: str,
    transaction_type: str,
    quantity_delta: int,
    note: str | None,
) -> dict:
    result = supabase.table("inventory_transactions").insert({
        "company_id": scope.company_id,
        "item_id": item_id,
        "transaction_type": transaction_type,
        "quantity_delta": quantity_delta,
        "note": note,
        "staff_id": scope.principal.profile_id,
    }).execute()
    return result.data[0]


def stock_error_to_http(exc: APIError) -> HTTPException | None:
    """Map the SQLSTATEs raised by the stock functions. None for anything else."""
    if exc.code == INSUFFICIENT_STOCK:
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "Insufficient stock", "item_id": exc.details},
        )
    if exc.code == ITEM_NOT_FOUND:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Item not found: {exc.details}")
    return None


def is_low_stock(item: dict) -> bool:
    return item["quantity"] <= item["critical_threshold"]


# --- Categories ---

@router.get("/categories", response_model=list[InventoryCategoryResponse])
async def list_categories(scope: TenantScope = Depends(require_scope_permission(INVENTORY_READ))):
    result = supabase.table("inventory_categories").select("*").eq(
        "company_id", scope.company_id
    ).order("name").execute()
    return result.data


@router.post("/categories", response_model=InventoryCategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: InventoryCategoryCreate,
    scope: TenantScope = Depends(require_scope_permission(INVENTORY_WRITE)),
):
    result = supabase.table("inventory_categories").insert({
        "company_id": scope.company_id,
        **data.model_dump(),
    }).execute()
    return result.data[0]


@router.put("/categories/{category_id}", response_model=InventoryCategoryResponse)
async def update_category(
    category_id: str,
    data: InventoryCategoryUpdate,
    scope: TenantScope = Depends(require_scope_permission(INVENTORY_WRITE)),
):
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    update_data["updated_at"] = _now_iso()
    result = supabase.table("inventory_categories").update(update_data).eq(
        "id", category_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return result.data[0]


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    scope: TenantScope = Depends(require_scope_permission(INVENTORY_WRITE)),
):
    _get_category(scope, category_id)
    in_use = supabase.table("inventory_items").select("id").eq(
        "company_id", scope.company_id
    ).eq("category_id", category_id).execute()
    if in_use.data:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category still has items")

    supabase.table("inventory_categories").delete().eq(
        "id", category_id
    ).eq("company_id", scope.company_id).execute()
    return None


# --- Items ---

@router.get("/items", response_model=list[InventoryItemResponse])
async def list_items(
    category_id: str | None = Query(None),
    low_stock: bool = Query(False),
    scope: TenantScope = Depends(require_scope_permission(INVENTORY_READ)),
):
    query = supabase.table("inventory_items").select("*").eq("company_id", scope.company_id)
    if category_id:
        query = query.eq("category_id", category_id)
    items = query.order("name").execute().data
    if low_stock:
        items = [item for item in items if is_low_stock(item)]
    return items


@router.get("/alerts", response_model=list[InventoryItemResponse])
async def list_stock_alerts(scope: TenantScope = Depends(require_scope_permission(INVENTORY_READ))):
    """Items at or below their critical threshold, emptiest first."""
    items = supabase.table("inventory_items").select("*").eq(
        "company_id", scope.company_id
    ).execute().data
    return sorted((item for item in items if is_low_stock(item)), key=lambda item: item["quantity"])


@router.post("/items", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    data: InventoryItemCreate,
    request: Request,
    scope: TenantScope = Depends(require_scope_permission(INVENTORY_WRITE)),
):
    """Create an item; opening stock is recorded as an INCOMING transaction."""
    if data.category_id:
        _get_category(scope, data.category_id)

    result = supabase.table("inventory_items").insert({
        "company_id": scope.company_id,
        **data.model_dump(),
    }).execute()
    item = result.data[0]

    if data.quantity > 0:
        record_transaction(
            scope,
            item_id=item["id"],
            transaction_type="INCOMING",
            quantity_delta=data.quantity,
            note="Initial inventory setup",
        )
    log_event(
        "inventory_item_created",
        request_id=request_id_of(request),
        company_id=scope.company_id,
        item_id=item["id"],
        quantity=data.quantity,
    )
    return item


@router.get("/items/{item_id}", response_model=InventoryItemResponse)
async def get_item_detail(
    item_id: str,
    scope: TenantScope = Depends(require_scope_permission(INVENTORY_READ)),
):
    return get_item(scope, item_id)


@router.put("/items/{item_id}", response_model=InventoryItemResponse)
async def update_item(
    item_id: str,
    data: InventoryItemUpdate,
    scope: TenantScope = Depends(require_scope_permission(INVENTORY_WRITE)),
):
    """Update item details. Stock levels change only through adjustments and sales."""
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    if update_data.get("category_id"):
        _get_category(scope, update_data["category_id"])

    update_data["updated_at"] = _now_iso()
    result = supabase.table("inventory_items").update(update_data).eq(
        "id", item_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return result.data[0]


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: str,
    scope: TenantScope = Depends(require_scope_permission(INVENTORY_WRITE)),
):
    result = supabase.table("inventory_items").delete().eq(
        "id", item_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return None


@router.post("/items/{item_id}/adjust", response_model=StockAdjustmentResponse)
async def adjust_stock(
    item_id: str,
    data: StockAdjustment,
    request: Request,
    scope: TenantScope = Depends(require_scope_permission(INVENTORY_WRITE)),
):
    """Apply a stock delta and its ledger row in one database call.

    The quantity is never written as an absolute value, so concurrent sales
    and adjustments cannot overwrite each other.
    """
    if data.quantity_delta == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="quantity_delta must not be zero")

    item = get_item(scope, item_id)
    if item["quantity"] + data.quantity_delta < 0:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Insufficient stock")

    transaction_type = data.transaction_type or ("INCOMING" if data.quantity_delta > 0 else "OUTGOING")
    try:
        result = supabase.rpc("adjust_inventory_stock", {
            "p_company_id": scope.company_id,
            "p_item_id": item_id,
            "p_quantity_delta": data.quantity_delta,
            "p_transaction_type": transaction_type,
            "p_note": data.note,
            "p_staff_id": scope.principal.profile_id,
        }).execute()
    except APIError as exc:
        error = stock_error_to_http(exc)
        if error is None:
            raise
        raise error from exc
    adjusted = result.data

    incr_metric("inventory.adjustments", transaction_type=transaction_type)
    log_event(
        "inventory_adjusted",
        request_id=request_id_of(request),
        company_id=scope.company_id,
        item_id=item_id,
        quantity_delta=data.quantity_delta,
        quantity=adjusted["item"]["quantity"],
    )
    return StockAdjustmentResponse(item=adjusted["item"], transaction=adjusted["transaction"])


@router.get("/items/{item_id}/transactions", response_model=list[InventoryTransactionResponse])
async def list_item_transactions(
    item_id: str,
    scope: TenantScope = Depends(require_scope_permission(INVENTORY_READ)),
):
    get_item(scope, item_id)
    result = supabase.table("inventory_transactions").select("*").eq(
        "company_id", scope.company_id
    ).eq("item_id", item_id).order("created_at", desc=True).execute()
    return result.data
