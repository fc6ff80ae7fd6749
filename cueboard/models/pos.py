from pydantic import BaseModel, Field
from datetime import datetime


class OrderLineCreate(BaseModel):
    item_id: str
    quantity: int = Field(gt=0)


class OrderCreate(BaseModel):
    items: list[OrderLineCreate] = Field(min_length=1)
    table_session_id: str | None = None
    paid_amount: float | None = Field(default=None, ge=0)


class OrderLineResponse(BaseModel):
    id: str
    order_id: str
    item_id: str
    quantity: int
    unit_price: float
    line_total: float


class OrderResponse(BaseModel):
    id: str
    company_id: str
    order_number: str
    staff_id: str | None = None
    table_session_id: str | None = None
    total_amount: float
    paid_amount: float | None = None
    created_at: datetime | None = None
    items: list[OrderLineResponse] = []
