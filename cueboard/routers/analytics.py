from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, Query
from cueboard.auth import TenantScope
from cueboard.auth.permissions import ANALYTICS_READ
from cueboard.auth.scope import require_scope_permission
from cueboard.db import supabase
from cueboard.domain.analytics import finance_trends, revenue_totals, start_of_day, top_products, week_start
from cueboard.models.analytics import FinanceTrendPoint, RevenueResponse, TopProductResponse

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def _today():
    return datetime.now(timezone.utc).date()


def _finance_categories(scope: TenantScope) -> dict[str, dict]:
    rows = supabase.table("finance_categories").select(
        "id, name, category_type"
    ).eq("company_id", scope.company_id).execute().data
    return {row["id"]: row for row in rows}


@router.get("/revenue", response_model=RevenueResponse)
async def get_revenue(scope: TenantScope = Depends(require_scope_permission(ANALYTICS_READ))):
    """Today's POS takings next to today's booked income and expenses."""
    today = _today()
    orders = supabase.table("pos_orders").select("id, total_amount").eq(
        "company_id", scope.company_id
    ).gte("created_at", start_of_day(today).isoformat()).execute().data
    transactions = supabase.table("finance_transactions").select(
        "id, category_id, amount"
    ).eq("company_id", scope.company_id).eq("transaction_date", today.isoformat()).execute().data

    totals = revenue_totals(orders, transactions, _finance_categories(scope))
    return RevenueResponse(company_id=scope.company_id, date=today, **totals)


@router.get("/top-products", response_model=list[TopProductResponse])
async def get_top_products(
    limit: int = Query(5, ge=1, le=50),
    scope: TenantScope = Depends(require_scope_permission(ANALYTICS_READ)),
):
    """Best-selling items since the start of the week."""
    since = start_of_day(week_start(_today()))
    orders = supabase.table("pos_orders").select("id").eq(
        "company_id", scope.company_id
    ).gte("created_at", since.isoformat()).execute().data
    if not orders:
        return []

    lines = supabase.table("pos_order_items").select("order_id, item_id, quantity, line_total").in_(
        "order_id", [order["id"] for order in orders]
    ).execute().data
    items = supabase.table("inventory_items").select("id, name").eq(
        "company_id", scope.company_id
    ).in_("id", list({line["item_id"] for line in lines})).execute().data
    return top_products(lines, {row["id"]: row for row in items}, limit=limit)


@router.get("/finance-trends", response_model=list[FinanceTrendPoint])
async def get_finance_trends(
    days: int = Query(7, ge=1, le=90),
    scope: TenantScope = Depends(require_scope_permission(ANALYTICS_READ)),
):
    """Daily income and expense, oldest day first, including empty days."""
    today = _today()
    transactions = supabase.table("finance_transactions").select(
        "id, category_id, amount, transaction_date"
    ).eq("company_id", scope.company_id).gte(
        "transaction_date", (today - timedelta(days=days - 1)).isoformat()
    ).lte("transaction_date", today.isoformat()).execute().data
    return finance_trends(transactions, _finance_categories(scope), end=today, days=days)
