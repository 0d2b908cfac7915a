"""
Caisse Backend — User Management Schemas
==========================================

What:  Admin-side user creation body and the user listing shape.
Security: `UserItem` has no password_hash field, so the hash can never
          be serialized even if a query selects it.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.auth import join_agencies


class UserCreateRequest(BaseModel):
    """Body of POST /api/users."""
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = Field(default=None, description="Defaults to 'user'")
    company: Optional[str] = Field(default=None, description="Defaults to DEFAULT_COMPANY")
    agencies: Optional[str] = Field(default=None, description="Comma-separated agency names")

    @field_validator("email", "role", "company")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None

    @field_validator("agencies", mode="before")
    @classmethod
    def normalize_agencies(cls, v):
        return join_agencies(v)


class UserItem(BaseModel):
    """One row of GET /api/users."""
    id: int
    email: Optional[str] = None
    role: Optional[str] = None
    company: Optional[str] = None
    agencies: Optional[str] = None


class UserListResponse(BaseModel):
    ok: bool = True
    users: List[UserItem]
