"""Pydantic schemas for login and session tokens."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.user import UserRead

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(BaseModel):
    # Optional so a missing field is answered with our own 400, not a 422
    username: str | None = Field(default=None, max_length=150)
    password: str | None = Field(default=None, max_length=128)


class SessionIdentity(BaseModel):
    """Identity attributes embedded in a session token."""

    model_config = _CAMEL

    id: str
    username: str
    full_name: str
    role: str


class SessionClaims(SessionIdentity):
    issued_at: datetime
    expires_at: datetime


class LoginResponse(BaseModel):
    model_config = _CAMEL

    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserRead


class LogoutResponse(BaseModel):
    message: str
