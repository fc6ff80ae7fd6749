from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1)
    address: str | None = None
    phone: str | None = None
    timezone: str | None = None
    active: bool = True


class CompanyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    address: str | None = None
    phone: str | None = None
    timezone: str | None = None


class CompanyResponse(BaseModel):
    id: str
    name: str
    address: str | None = None
    phone: str | None = None
    timezone: str | None = None
    active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CompanyAdminResponse(CompanyResponse):
    user_count: int = 0


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class CompanyListResponse(BaseModel):
    companies: list[CompanyAdminResponse]
    pagination: Pagination


class CompanySelectionResponse(BaseModel):
    company: CompanyResponse
    remembered: bool = True


class JoinRequestCreate(BaseModel):
    company_id: str
    message: str | None = None


class JoinRequestResponse(BaseModel):
    id: str
    user_id: str
    company_id: str
    message: str | None = None
    status: Literal["pending", "approved", "rejected"]
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
