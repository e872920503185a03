# store_api/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal[
    "pending",
    "processing",
    "ready_for_pickup",
    "claimed",
    "completed",
    "delivered",
    "cancelled",
    "refunded",
]
PaymentMethod = Literal["cash", "gcash"]
PaymentStatus = Literal["unpaid", "paid", "failed", "refunded"]
StatsPeriod = Literal["day", "week", "month", "year"]


class CheckoutRequest(SQLModel):
    """
    Payload for turning the current cart into an order.

    Backend derives:
      - user_id from token
      - status = 'pending', payment_status = 'unpaid'
      - total_amount and items from cart
    """

    model_config = ConfigDict(extra="forbid")

    payment_method: PaymentMethod
    pay_at_counter: bool = True


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: int
    user_id: uuid.UUID
    status: OrderStatus
    payment_method: PaymentMethod
    pay_at_counter: bool
    payment_status: PaymentStatus
    payment_reference: str | None = None
    total_amount: float
    created_at: datetime
    updated_at: datetime


class AdminOrderRead(OrderRead):
    """
    Admin listing row with customer info.
    """

    user_name: str | None = None
    student_id: str | None = None
    email: str | None = None
    item_count: int = 0


class OrderItemRead(SQLModel):
    id: int
    order_id: int
    product_id: int
    product_name: str | None = None
    size: str | None = None
    quantity: int
    unit_price: float
    line_total: float


class OrderStatusLogRead(SQLModel):
    old_status: OrderStatus | None = None
    new_status: OrderStatus
    notes: str | None = None
    changed_by: uuid.UUID | None = None
    created_at: datetime


class OrderWithItemsRead(AdminOrderRead):
    """
    Full order view including items and status history (newest first).
    """

    items: list[OrderItemRead]
    status_history: list[OrderStatusLogRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderStatusChange(SQLModel):
    """
    Result of a status transition.
    """

    order: OrderRead
    previous_status: OrderStatus
    new_status: OrderStatus
    message: str


class StatusBreakdown(SQLModel):
    pending: int = 0
    processing: int = 0
    ready_for_pickup: int = 0
    claimed: int = 0
    completed: int = 0
    delivered: int = 0
    cancelled: int = 0
    refunded: int = 0


class DailyOrderStats(SQLModel):
    date: str
    orders: int
    revenue: float


class OrderStats(SQLModel):
    period: StatsPeriod
    total_orders: int
    total_revenue: float
    avg_order_value: float
    status_breakdown: StatusBreakdown
    daily_stats: list[DailyOrderStats]


class AutoConfirmStats(SQLModel):
    total_claimed_orders: int
    ready_for_auto_confirm: int
    will_be_ready_tomorrow: int
    will_be_ready_in_2_days: int


class AutoConfirmResult(SQLModel):
    confirmed_order_ids: list[int]
