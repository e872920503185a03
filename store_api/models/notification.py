# store_api/models/notification.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Notification(SQLModel, table=True):
    """
    In-app notification.

    user_id is None for admin broadcasts (visible to every admin).
    """

    __tablename__ = "notifications"

    id: int | None = Field(default=None, primary_key=True)

    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )

    # system | order | admin_order | low_stock | payment
    type: str = Field(default="system", index=True)

    title: str | None = Field(default=None, max_length=200)

    message: str

    # Usually an order id
    related_id: int | None = None

    is_read: bool = Field(default=False, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
