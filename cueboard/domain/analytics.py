"""Per-company reporting calculations.

All windows are half-open ``[start, end)`` in UTC. Weeks start on Sunday.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any

from cueboard.domain.table_sessions import CENT, parse_timestamp

Window = tuple[str, datetime, datetime]


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def week_start(day: date) -> date:
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _money(value: Any) -> Decimal:
    return Decimal(str(value or 0))


def _hour_label(hour: int) -> str:
    return f"{hour % 12 or 12} {'AM' if hour < 12 else 'PM'}"


def usage_windows(today: date) -> dict[str, list[Window]]:
    """Hourly buckets for today, daily for this week, four weekly for this month."""
    day_start = start_of_day(today)
    week = start_of_day(week_start(today))
    month = start_of_day(today.replace(day=1))
    return {
        "today": [
            (_hour_label(hour), day_start + timedelta(hours=hour), day_start + timedelta(hours=hour + 1))
            for hour in range(24)
        ],
        "week": [
            ((week + timedelta(days=offset)).strftime("%a"), week + timedelta(days=offset), week + timedelta(days=offset + 1))
            for offset in range(7)
        ],
        "month": [
            (f"Week {index + 1}", month + timedelta(weeks=index), month + timedelta(weeks=index + 1))
            for index in range(4)
        ],
    }


def overlap_minutes(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> int:
    """Whole minutes of ``[start, end)`` falling inside the window."""
    seconds = (min(end, window_end) - max(start, window_start)).total_seconds()
    return max(0, int(seconds // 60))


def usage_buckets(sessions: Iterable[Mapping[str, Any]], windows: list[Window]) -> list[dict[str, Any]]:
    """Play time and prorated revenue of closed sessions per window.

    A session's billed cost is spread evenly over its billed minutes, so a
    session crossing a window boundary contributes to both windows.
    """
    closed = []
    for session in sessions:
        if not session.get("ended_at") or not session.get("duration_min"):
            continue
        closed.append((
            parse_timestamp(session["started_at"]),
            parse_timestamp(session["ended_at"]),
            _money(session.get("total_cost")) / Decimal(session["duration_min"]),
        ))

    buckets = []
    for name, window_start, window_end in windows:
        minutes = 0
        revenue = Decimal("0")
        for started, ended, per_minute in closed:
            overlap = overlap_minutes(started, ended, window_start, window_end)
            minutes += overlap
            revenue += per_minute * overlap
        buckets.append({
            "name": name,
            "hours": round(minutes / 60, 2),
            "revenue": revenue.quantize(CENT),
        })
    return buckets


def revenue_totals(
    orders: Iterable[Mapping[str, Any]],
    transactions: Iterable[Mapping[str, Any]],
    categories: Mapping[str, Mapping[str, Any]],
) -> dict[str, Decimal]:
    pos_revenue = sum((_money(order.get("total_amount")) for order in orders), Decimal("0"))
    income = Decimal("0")
    expenses = Decimal("0")
    for row in transactions:
        category = categories.get(row.get("category_id"))
        if category is None:
            continue
        if category.get("category_type") == "INCOME":
            income += _money(row.get("amount"))
        else:
            expenses += _money(row.get("amount"))
    return {"pos_revenue": pos_revenue, "other_income": income, "expenses": expenses}


def top_products(
    lines: Iterable[Mapping[str, Any]],
    items: Mapping[str, Mapping[str, Any]],
    limit: int = 5,
) -> list[dict[str, Any]]:
    """Best sellers by quantity; ties go to the higher revenue."""
    quantities: dict[str, int] = defaultdict(int)
    revenue: dict[str, Decimal] = defaultdict(Decimal)
    for line in lines:
        quantities[line["item_id"]] += int(line.get("quantity") or 0)
        revenue[line["item_id"]] += _money(line.get("line_total"))

    ranked = sorted(quantities, key=lambda item_id: (-quantities[item_id], -revenue[item_id], item_id))
    return [
        {
            "item_id": item_id,
            "name": (items.get(item_id) or {}).get("name"),
            "quantity_sold": quantities[item_id],
            "revenue": revenue[item_id],
        }
        for item_id in ranked[:limit]
    ]


def finance_trends(
    transactions: Iterable[Mapping[str, Any]],
    categories: Mapping[str, Mapping[str, Any]],
    *,
    end: date,
    days: int,
) -> list[dict[str, Any]]:
    """Income and expense per day for the ``days`` days ending on ``end``."""
    first = end - timedelta(days=days - 1)
    totals = {
        first + timedelta(days=offset): {"income": Decimal("0"), "expense": Decimal("0")}
        for offset in range(days)
    }
    for row in transactions:
        day = date.fromisoformat(str(row["transaction_date"])[:10])
        category = categories.get(row.get("category_id"))
        if day not in totals or category is None:
            continue
        key = "income" if category.get("category_type") == "INCOME" else "expense"
        totals[day][key] += _money(row.get("amount"))
    return [{"date": day, **amounts} for day, amounts in sorted(totals.items())]
