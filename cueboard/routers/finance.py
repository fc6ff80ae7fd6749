from datetime import date, datetime, timezone
from typing import Literal
from fastapi import APIRouter, Depends, HTTPException, Query, status
from cueboard.auth import TenantScope
from cueboard.auth.permissions import FINANCE_READ, FINANCE_WRITE
from cueboard.auth.scope import require_scope_permission
from cueboard.db import supabase
from cueboard.domain.finance import period_start, summarize_transactions
from cueboard.models.finance import (
    FinanceCategoryCreate,
    FinanceCategoryResponse,
    FinanceCategoryUpdate,
    FinanceSummaryResponse,
    FinanceTransactionCreate,
    FinanceTransactionResponse,
    FinanceTransactionUpdate,
)

router = APIRouter(prefix="/api/finance", tags=["finance"])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_category(scope: TenantScope, category_id: str) -> dict:
    result = supabase.table("finance_categories").select("*").eq(
        "id", category_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return result.data[0]


# --- Categories ---

@router.get("/categories", response_model=list[FinanceCategoryResponse])
async def list_categories(
    category_type: Literal["INCOME", "EXPENSE"] | None = Query(None),
    scope: TenantScope = Depends(require_scope_permission(FINANCE_READ)),
):
    query = supabase.table("finance_categories").select("*").eq("company_id", scope.company_id)
    if category_type:
        query = query.eq("category_type", category_type)
    return query.order("name").execute().data


@router.post("/categories", response_model=FinanceCategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: FinanceCategoryCreate,
    scope: TenantScope = Depends(require_scope_permission(FINANCE_WRITE)),
):
    result = supabase.table("finance_categories").insert({
        "company_id": scope.company_id,
        **data.model_dump(),
    }).execute()
    return result.data[0]


@router.put("/categories/{category_id}", response_model=FinanceCategoryResponse)
async def update_category(
    category_id: str,
    data: FinanceCategoryUpdate,
    scope: TenantScope = Depends(require_scope_permission(FINANCE_WRITE)),
):
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    update_data["updated_at"] = _now_iso()
    result = supabase.table("finance_categories").update(update_data).eq(
        "id", category_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return result.data[0]


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    scope: TenantScope = Depends(require_scope_permission(FINANCE_WRITE)),
):
    _get_category(scope, category_id)
    in_use = supabase.table("finance_transactions").select("id").eq(
        "company_id", scope.company_id
    ).eq("category_id", category_id).execute()
    if in_use.data:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category still has transactions")

    supabase.table("finance_categories").delete().eq(
        "id", category_id
    ).eq("company_id", scope.company_id).execute()
    return None


# --- Transactions ---

@router.get("/transactions", response_model=list[FinanceTransactionResponse])
async def list_transactions(
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    category_id: str | None = Query(None),
    scope: TenantScope = Depends(require_scope_permission(FINANCE_READ)),
):
    query = supabase.table("finance_transactions").select("*").eq("company_id", scope.company_id)
    if date_from:
        query = query.gte("transaction_date", date_from.isoformat())
    if date_to:
        query = query.lte("transaction_date", date_to.isoformat())
    if category_id:
        query = query.eq("category_id", category_id)
    return query.order("transaction_date", desc=True).execute().data


@router.post("/transactions", response_model=FinanceTransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    data: FinanceTransactionCreate,
    scope: TenantScope = Depends(require_scope_permission(FINANCE_WRITE)),
):
    _get_category(scope, data.category_id)
    result = supabase.table("finance_transactions").insert({
        "company_id": scope.company_id,
        "category_id": data.category_id,
        "amount": data.amount,
        "transaction_date": data.transaction_date.isoformat(),
        "description": data.description,
        "staff_id": scope.principal.profile_id,
    }).execute()
    return result.data[0]


@router.put("/transactions/{transaction_id}", response_model=FinanceTransactionResponse)
async def update_transaction(
    transaction_id: str,
    data: FinanceTransactionUpdate,
    scope: TenantScope = Depends(require_scope_permission(FINANCE_WRITE)),
):
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    if update_data.get("category_id"):
        _get_category(scope, update_data["category_id"])
    if update_data.get("transaction_date"):
        update_data["transaction_date"] = update_data["transaction_date"].isoformat()

    update_data["updated_at"] = _now_iso()
    result = supabase.table("finance_transactions").update(update_data).eq(
        "id", transaction_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return result.data[0]


@router.delete("/transactions/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: str,
    scope: TenantScope = Depends(require_scope_permission(FINANCE_WRITE)),
):
    result = supabase.table("finance_transactions").delete().eq(
        "id", transaction_id
    ).eq("company_id", scope.company_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return None


@router.get("/summary", response_model=FinanceSummaryResponse)
async def get_summary(
    period: Literal["today", "week", "month", "all"] = Query("today"),
    scope: TenantScope = Depends(require_scope_permission(FINANCE_READ)),
):
    """Income, expense and top categories for the dashboard."""
    today = datetime.now(timezone.utc).date()
    start = period_start(period, today)

    query = supabase.table("finance_transactions").select(
        "id, category_id, amount, transaction_date"
    ).eq("company_id", scope.company_id)
    if start is not None:
        query = query.gte("transaction_date", start.isoformat())
    transactions = query.execute().data

    categories = supabase.table("finance_categories").select(
        "id, name, category_type"
    ).eq("company_id", scope.company_id).execute().data

    summary = summarize_transactions(
        transactions,
        {row["id"]: row for row in categories},
        start=start,
        end=today,
    )
    return FinanceSummaryResponse(period=period, **summary)
