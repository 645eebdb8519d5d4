"""Pydantic schemas for identity records (admin CRUD)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.security import MAX_PASSWORD_BYTES, password_too_long
from app.models.user import VALID_ROLES, ROLE_USER


def _check_role(v: str | None) -> str | None:
    if v is not None and v not in VALID_ROLES:
        raise ValueError(f"Role must be one of: {sorted(VALID_ROLES)}")
    return v


def _check_username(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Username must not be empty")
    return v


def _check_password(v: str | None) -> str | None:
    if v is not None and password_too_long(v):
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v


class UserCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_name: str = Field(min_length=1, max_length=200)
    username: str = Field(max_length=150)
    password: str = Field(min_length=1, max_length=128)
    role: str = ROLE_USER

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None) -> str | None:
        return _check_role(v)

    @field_validator("username")
    @classmethod
    def _normalise_username(cls, v: str | None) -> str | None:
        return _check_username(v)

    @field_validator("password")
    @classmethod
    def _limit_password(cls, v: str | None) -> str | None:
        return _check_password(v)


class UserUpdate(BaseModel):
    """Partial profile update; ``password`` is re-hashed when present."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_name: str | None = Field(default=None, min_length=1, max_length=200)
    username: str | None = Field(default=None, max_length=150)
    role: str | None = None
    password: str | None = Field(default=None, max_length=128)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None) -> str | None:
        return _check_role(v)

    @field_validator("username")
    @classmethod
    def _normalise_username(cls, v: str | None) -> str | None:
        return _check_username(v)

    @field_validator("password")
    @classmethod
    def _limit_password(cls, v: str | None) -> str | None:
        return _check_password(v)


class UserStatusUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_active: bool


class UserRead(BaseModel):
    """Public view of an identity record.  Deliberately has no password field."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    full_name: str
    username: str
    role: str
    is_active: bool
    created_at: datetime


class ChangeResponse(BaseModel):
    message: str
    changes: int
