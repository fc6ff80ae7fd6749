from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Literal

CategoryType = Literal["INCOME", "EXPENSE"]


class FinanceCategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    category_type: CategoryType


class FinanceCategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    category_type: CategoryType | None = None


class FinanceCategoryResponse(BaseModel):
    id: str
    company_id: str
    name: str
    category_type: CategoryType
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FinanceTransactionCreate(BaseModel):
    category_id: str
    amount: float = Field(gt=0)
    transaction_date: date
    description: str | None = None


class FinanceTransactionUpdate(BaseModel):
    category_id: str | None = None
    amount: float | None = Field(default=None, gt=0)
    transaction_date: date | None = None
    description: str | None = None


class FinanceTransactionResponse(BaseModel):
    id: str
    company_id: str
    category_id: str
    amount: float
    transaction_date: date
    description: str | None = None
    staff_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CategoryTotal(BaseModel):
    category_id: str
    name: str
    total: float


class FinanceSummaryResponse(BaseModel):
    period: Literal["today", "week", "month", "all"]
    income: float
    expense: float
    net: float
    transaction_count: int
    top_income_categories: list[CategoryTotal]
    top_expense_categories: list[CategoryTotal]
