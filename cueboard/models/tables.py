from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Literal

TableStatus = Literal["AVAILABLE", "BUSY", "MAINTENANCE"]


class TableCreate(BaseModel):
    name: str = Field(min_length=1)
    hourly_rate: float | None = Field(default=None, ge=0)
    status: TableStatus = "AVAILABLE"


class TableUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    hourly_rate: float | None = Field(default=None, ge=0)
    status: TableStatus | None = None


class TableResponse(BaseModel):
    id: str
    company_id: str
    name: str
    status: TableStatus | None = None
    hourly_rate: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SessionStart(BaseModel):
    started_at: datetime | None = None


class SessionEnd(BaseModel):
    ended_at: datetime | None = None


class TableSessionResponse(BaseModel):
    id: str
    company_id: str
    table_id: str
    staff_id: str | None = None
    started_at: datetime
    ended_at: datetime | None = None
    duration_min: int | None = None
    total_cost: float | None = None
    status: str | None = None


class ActivityLogResponse(BaseModel):
    id: str
    company_id: str
    user_id: str | None = None
    action: str
    entity_type: str
    entity_id: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None


class UsageBucket(BaseModel):
    name: str
    hours: float
    revenue: float


class TableStatsResponse(BaseModel):
    table_id: str
    today: list[UsageBucket]
    week: list[UsageBucket]
    month: list[UsageBucket]


ReservationStatus = Literal["PENDING", "CONFIRMED", "CANCELLED"]


class ReservationCreate(BaseModel):
    table_id: str
    customer_name: str = Field(min_length=1)
    customer_phone: str | None = None
    reserved_from: datetime
    reserved_to: datetime
    status: ReservationStatus = "PENDING"


class ReservationUpdate(BaseModel):
    customer_name: str | None = Field(default=None, min_length=1)
    customer_phone: str | None = None
    reserved_from: datetime | None = None
    reserved_to: datetime | None = None
    status: ReservationStatus | None = None


class ReservationResponse(BaseModel):
    id: str
    company_id: str
    table_id: str
    customer_name: str
    customer_phone: str | None = None
    reserved_from: datetime
    reserved_to: datetime
    status: ReservationStatus
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MaintenanceCreate(BaseModel):
    table_id: str
    description: str | None = None
    maintenance_at: datetime | None = None
    cost: float | None = Field(default=None, ge=0)


class MaintenanceResponse(BaseModel):
    id: str
    company_id: str
    table_id: str
    description: str | None = None
    maintenance_at: datetime
    cost: float | None = None
    created_by: str | None = None
    created_at: datetime | None = None
