# store_api/routers/payments.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from store_api.core.auth import require_admin, require_auth, require_user
from store_api.database import get_session
from store_api.models.user import User
from store_api.repositories.notification_repo import NotificationRepository
from store_api.repositories.order_repo import OrderRepository
from store_api.schemas.order import OrderRead
from store_api.schemas.payment import (
    GCashSelection,
    PaymentSelectionResult,
    PaymentStatusUpdate,
)
from store_api.services.notification_service import NotificationService
from store_api.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])

service = PaymentService(OrderRepository(), NotificationService(NotificationRepository()))


@router.post("/gcash", response_model=PaymentSelectionResult)
def select_gcash(
    payload: GCashSelection,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Choose GCash for an unpaid order.

    Returns a tracking reference to show at the counter; the order stays
    unpaid until staff confirm the payment.
    """
    return service.select_gcash(session, current_user, payload)


@router.get("/status/{order_id}", response_model=OrderRead)
def payment_status(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.get_payment_status(session, current_user, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_payment_status(
    order_id: int,
    payload: PaymentStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Mark an order's payment as paid / failed / unpaid (admin only).
    The customer is notified.
    """
    return service.update_payment_status(session, order_id, payload)
