"""
Caisse Backend — Authentication Schemas
=========================================

What:  Request bodies for signup/login and the session claims carried by tokens.
How:   Required fields are declared Optional so that a missing email or
       password reaches the service and becomes a 400 with a readable
       message instead of FastAPI's generic 422.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from app.roles import DEFAULT_ROLE, parse_agencies


def join_agencies(value: Union[str, List[str], None]) -> Optional[str]:
    """Accept "A,B" or ["A", "B"]; store the canonical comma-separated form."""
    if value is None:
        return None
    if isinstance(value, list):
        value = ",".join(str(item) for item in value)
    if not isinstance(value, str):
        raise ValueError("agencies must be a string or a list of strings")
    return ",".join(parse_agencies(value))


class SignupRequest(BaseModel):
    """Body of POST /api/signup."""
    email: Optional[str] = Field(default=None, description="Login email (unique)")
    password: Optional[str] = Field(default=None, description="Plain-text password")
    agencies: Optional[str] = Field(default=None, description="Comma-separated agency names")

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None

    @field_validator("agencies", mode="before")
    @classmethod
    def normalize_agencies(cls, v):
        return join_agencies(v)


class LoginRequest(BaseModel):
    """Body of POST /api/login."""
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None


class SessionUser(BaseModel):
    """
    What:  Identity encoded in a session token and returned by login.
    Who:   Produced by AuthService.login and app.security.decode_token;
           injected into handlers by the `require_user` dependency.
    """
    id: int
    email: str
    role: str = DEFAULT_ROLE
    company: str = ""
    agencies: str = ""

    @property
    def agency_list(self) -> List[str]:
        return parse_agencies(self.agencies)


class LoginResponse(BaseModel):
    """Returned by POST /api/login."""
    ok: bool = True
    token: str = Field(description="Signed bearer token, valid for TOKEN_TTL_HOURS")
    user: SessionUser
