from pydantic import BaseModel
from datetime import date


class RevenueResponse(BaseModel):
    company_id: str
    date: date
    pos_revenue: float
    other_income: float
    expenses: float


class TopProductResponse(BaseModel):
    item_id: str
    name: str | None = None
    quantity_sold: int
    revenue: float


class FinanceTrendPoint(BaseModel):
    date: date
    income: float
    expense: float
