# store_api/models/stock_movement.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class StockMovement(SQLModel, table=True):
    """
    Append-only inventory ledger row.

    `quantity` is the signed delta applied to the product (or size) stock:
      stock_in         > 0
      stock_out        < 0
      stock_adjustment  either sign (physical count - previous stock)

    Invariant: new_stock == previous_stock + quantity and new_stock >= 0.
    """

    __tablename__ = "stock_movements"

    id: int | None = Field(default=None, primary_key=True)

    product_id: int = Field(
        foreign_key="products.id",
        index=True,
    )

    size: str | None = Field(default=None, max_length=20, index=True)

    movement_type: str = Field(index=True)

    quantity: int

    reason: str = Field(max_length=100)

    supplier: str | None = Field(default=None, max_length=200)

    notes: str | None = None

    # e.g. "ORDER-12" for checkout / cancellation movements
    reference: str | None = Field(default=None, max_length=50, index=True)

    previous_stock: int = Field(ge=0)
    new_stock: int = Field(ge=0)

    # None => system
    performed_by: uuid.UUID | None = Field(default=None, foreign_key="users.id")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )
