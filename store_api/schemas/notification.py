# store_api/schemas/notification.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class NotificationRead(SQLModel):
    id: int
    user_id: uuid.UUID | None = None
    type: str
    title: str | None = None
    message: str
    related_id: int | None = None
    is_read: bool
    created_at: datetime


class Pagination(SQLModel):
    page: int
    limit: int
    total: int
    total_pages: int


class NotificationPage(SQLModel):
    notifications: list[NotificationRead]
    pagination: Pagination


class UnreadCount(SQLModel):
    count: int


class NotificationCreate(SQLModel):
    """
    Admin payload for a manual notification to one user.
    """

    model_config = ConfigDict(extra="forbid")

    user_id: uuid.UUID
    message: str = Field(max_length=1000)
    title: str | None = Field(default=None, max_length=200)

    @field_validator("message")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("message is required")
        return v
