# store_api/schemas/payment.py
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel

from store_api.schemas.order import OrderRead


class GCashSelection(SQLModel):
    """
    Customer payload to pick GCash for an order.

    No money moves: the order keeps payment_status='unpaid' until an
    admin confirms payment at the counter.
    """

    model_config = ConfigDict(extra="forbid")

    order_id: int


class PaymentStatusUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    payment_status: Literal["unpaid", "paid", "failed"]


class PaymentSelectionResult(SQLModel):
    order: OrderRead
    payment_reference: str
    message: str
