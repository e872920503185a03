# store_api/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent user profile for the store.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    Role:
      - "user" (student / customer) | "admin" (store staff)

    Password hashes live in Supabase Auth. We only mirror identity,
    name, student number and application role.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from Supabase auth.users",
    )

    name: str = Field(
        max_length=100,
        description="Display name; first part of email by default",
    )

    student_id: str | None = Field(
        default=None,
        max_length=30,
        unique=True,
        index=True,
        description="School-issued student number; at most one account each",
    )

    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    is_active: bool = Field(
        default=True,
        description="Deactivated accounts are refused at sign-in",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
