# store_api/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order, picked up at the accounting office.

    status lifecycle:
      pending -> processing -> ready_for_pickup -> claimed -> completed
      (delivered / cancelled / refunded as side branches)
    """

    __tablename__ = "orders"

    id: int | None = Field(default=None, primary_key=True)

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    # cash | gcash
    payment_method: str = Field(description="Selected payment method")

    pay_at_counter: bool = Field(default=True)

    # unpaid | paid | failed | refunded
    payment_status: str = Field(default="unpaid", index=True)

    payment_reference: str | None = Field(
        default=None,
        description="Tracking id of the payment selection",
    )

    total_amount: float = Field(
        description="Final amount for this order",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    # Bumped on every status change; auto-confirm counts from it
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.
    """

    __tablename__ = "order_items"

    id: int | None = Field(default=None, primary_key=True)

    order_id: int = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: int = Field(
        foreign_key="products.id",
        index=True,
    )

    product_name: str | None = None

    size: str | None = Field(default=None, max_length=20)

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    unit_price: float = Field(
        description="Unit price at time of order",
    )


class OrderStatusLog(SQLModel, table=True):
    """
    Append-only audit trail of order status changes.
    """

    __tablename__ = "order_status_logs"

    id: int | None = Field(default=None, primary_key=True)

    order_id: int = Field(
        foreign_key="orders.id",
        index=True,
    )

    old_status: str | None = None
    new_status: str

    notes: str | None = None

    # None => system (checkout bookkeeping, auto-confirm)
    changed_by: uuid.UUID | None = Field(default=None, foreign_key="users.id")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
