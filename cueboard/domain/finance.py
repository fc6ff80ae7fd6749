from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

PERIOD_DAYS = {"week": 7, "month": 30}


def period_start(period: str, today: date) -> date | None:
    """First day included in a summary period; None means unbounded."""
    if period == "today":
        return today
    if period in PERIOD_DAYS:
        return today - timedelta(days=PERIOD_DAYS[period])
    if period == "all":
        return None
    raise ValueError(f"Unsupported period: {period}")


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def summarize_transactions(
    transactions: list[dict[str, Any]],
    categories: dict[str, dict[str, Any]],
    *,
    start: date | None = None,
    end: date | None = None,
    top_n: int = 3,
) -> dict[str, Any]:
    income = Decimal("0")
    expense = Decimal("0")
    count = 0
    by_category: dict[str, Decimal] = defaultdict(Decimal)

    for row in transactions:
        day = _as_date(row["transaction_date"])
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        category = categories.get(row["category_id"])
        if category is None:
            continue
        amount = Decimal(str(row["amount"]))
        count += 1
        by_category[row["category_id"]] += amount
        if category["category_type"] == "INCOME":
            income += amount
        else:
            expense += amount

    def _top(category_type: str) -> list[dict[str, Any]]:
        ranked = sorted(
            (
                (category_id, total)
                for category_id, total in by_category.items()
                if categories[category_id]["category_type"] == category_type
            ),
            key=lambda item: item[1],
            reverse=True,
        )
        return [
            {"category_id": category_id, "name": categories[category_id]["name"], "total": total}
            for category_id, total in ranked[:top_n]
        ]

    return {
        "income": income,
        "expense": expense,
        "net": income - expense,
        "transaction_count": count,
        "top_income_categories": _top("INCOME"),
        "top_expense_categories": _top("EXPENSE"),
    }
