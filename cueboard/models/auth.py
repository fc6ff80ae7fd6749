from pydantic import BaseModel
from typing import Literal
from cueboard.auth.permissions import Role


class MeResponse(BaseModel):
    user_id: str
    profile_id: str | None
    email: str | None
    role: Role
    company_id: str | None
    permissions: list[str]


class ScopeResponse(BaseModel):
    status: Literal["allowed", "denied", "selection_required"]
    company_id: str | None = None
    reason: str | None = None
