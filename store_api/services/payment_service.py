# store_api/services/payment_service.py
import logging
import secrets
import time

from fastapi import HTTPException, status
from sqlmodel import Session

from store_api.models.order import Order
from store_api.models.user import User
from store_api.repositories.order_repo import OrderRepository
from store_api.schemas.order import OrderRead
from store_api.schemas.payment import (
    GCashSelection,
    PaymentSelectionResult,
    PaymentStatusUpdate,
)
from store_api.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def gcash_tracking_id() -> str:
    """
    e.g. gcash_1739251200000_k3f9x2ab
    """
    return f"gcash_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class PaymentService:
    """
    Payment bookkeeping. Payments are settled at the counter; this only
    records the customer's choice and the admin's confirmation.
    """

    def __init__(self, order_repo: OrderRepository, notifications: NotificationService):
        self.order_repo = order_repo
        self.notifications = notifications

    def _lock_order(self, session: Session, order_id: int) -> Order:
        order = self.order_repo.get_for_update(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def select_gcash(
        self,
        session: Session,
        customer: User,
        payload: GCashSelection,
    ) -> PaymentSelectionResult:
        """
        Customer picks GCash for one of their unpaid orders.

        The order stays unpaid; the tracking id lets the counter match the
        transfer later.
        """
        order = self._lock_order(session, payload.order_id)
        if order.user_id != customer.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        if order.payment_status != "unpaid":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Order payment is already {order.payment_status}",
            )
        if order.status in ("cancelled", "refunded"):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Order is {order.status}",
            )

        order.payment_method = "gcash"
        order.payment_reference = gcash_tracking_id()
        self.order_repo.update_order(session, order)

        self.notifications.notify_admins(
            session,
            f"Order #{order.id} will be paid via GCash at the counter "
            f"(ref {order.payment_reference}).",
            title="GCash Payment Selected",
            type="payment",
            related_id=order.id,
        )
        session.commit()
        session.refresh(order)

        logger.info("Order #%s: GCash selected (%s)", order.id, order.payment_reference)
        return PaymentSelectionResult(
            order=OrderRead.model_validate(order),
            payment_reference=order.payment_reference,
            message="GCash selected. Please pay at the accounting office.",
        )

    def update_payment_status(
        self,
        session: Session,
        order_id: int,
        payload: PaymentStatusUpdate,
    ) -> Order:
        order = self._lock_order(session, order_id)
        if order.payment_status == "refunded":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Refunded payments cannot be changed",
            )
        if order.payment_status == payload.payment_status:
            return order

        previous = order.payment_status
        order.payment_status = payload.payment_status
        self.order_repo.update_order(session, order)

        self.notifications.payment_changed(session, order)
        session.commit()
        session.refresh(order)

        logger.info("Order #%s payment: %s -> %s", order.id, previous, order.payment_status)
        return order

    def get_payment_status(self, session: Session, user: User, order_id: int) -> Order:
        """
        Customers see their own orders; admins see any.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or (user.role != "admin" and order.user_id != user.id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order
