# store_api/schemas/user.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

Role = Literal["user", "admin"]


def _strip_optional(v: str | None, message: str) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError(message)
    return v


class UserCreate(SQLModel):
    """
    Payload for first-time profile completion (after Supabase sign-up).

    Email is optional and only cross-checked against the token email.
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr | None = None
    name: str | None = Field(default=None, max_length=100)
    student_id: str | None = Field(default=None, max_length=30)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        return _strip_optional(v, "name cannot be empty")

    @field_validator("student_id")
    @classmethod
    def normalize_student_id(cls, v: str | None) -> str | None:
        return _strip_optional(v, "student_id cannot be empty")


class UserUpdate(SQLModel):
    """
    Partial profile update for authenticated users.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    student_id: str | None = Field(default=None, max_length=30)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        return _strip_optional(v, "name cannot be empty")

    @field_validator("student_id")
    @classmethod
    def normalize_student_id(cls, v: str | None) -> str | None:
        return _strip_optional(v, "student_id cannot be empty")


class UserRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    email: str
    name: str
    student_id: str | None = None
    role: Role
    is_active: bool = True
    created_at: datetime


class UserRoleUpdate(SQLModel):
    """
    Admin-only role update schema.
    """

    model_config = ConfigDict(extra="forbid")
    role: Role


class UserStatusUpdate(SQLModel):
    """Admin-only account activation toggle."""

    model_config = ConfigDict(extra="forbid")
    is_active: bool
