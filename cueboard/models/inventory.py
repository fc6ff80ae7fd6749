from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal


class InventoryCategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None


class InventoryCategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None


class InventoryCategoryResponse(BaseModel):
    id: str
    company_id: str
    name: str
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class InventoryItemCreate(BaseModel):
    name: str = Field(min_length=1)
    category_id: str | None = None
    sku: str | None = None
    quantity: int = Field(default=0, ge=0)
    critical_threshold: int = Field(default=5, ge=0)
    price: float | None = Field(default=None, ge=0)


class InventoryItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    category_id: str | None = None
    sku: str | None = None
    critical_threshold: int | None = Field(default=None, ge=0)
    price: float | None = Field(default=None, ge=0)


class InventoryItemResponse(BaseModel):
    id: str
    company_id: str
    category_id: str | None = None
    name: str
    sku: str | None = None
    quantity: int
    critical_threshold: int
    price: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class StockAdjustment(BaseModel):
    quantity_delta: int
    transaction_type: Literal["INCOMING", "OUTGOING", "ADJUSTMENT"] | None = None
    note: str | None = None


class InventoryTransactionResponse(BaseModel):
    id: str
    company_id: str
    item_id: str
    transaction_type: Literal["INCOMING", "OUTGOING", "ADJUSTMENT"]
    quantity_delta: int
    note: str | None = None
    staff_id: str | None = None
    created_at: datetime | None = None


class StockAdjustmentResponse(BaseModel):
    item: InventoryItemResponse
    transaction: InventoryTransactionResponse
