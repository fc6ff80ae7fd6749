from pydantic import BaseModel, field_validator
from datetime import datetime
from cueboard.auth.permissions import Role, normalize_role


class ProfileUpdate(BaseModel):
    role: Role | None = None
    company_id: str | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _upper_role(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class ProfileResponse(BaseModel):
    id: str
    user_id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: Role
    company_id: str | None = None
    active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value) -> Role:
        return normalize_role(value)
