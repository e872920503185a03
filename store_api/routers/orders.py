# store_api/routers/orders.py
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlmodel import Session

from store_api.core.auth import require_user, require_admin
from store_api.database import get_session
from store_api.models.user import User
from store_api.repositories.cart_repo import CartRepository
from store_api.repositories.notification_repo import NotificationRepository
from store_api.repositories.order_repo import OrderRepository
from store_api.repositories.product_repo import ProductRepository
from store_api.repositories.stats_repo import StatsRepository
from store_api.repositories.stock_movement_repo import StockMovementRepository
from store_api.repositories.user_repo import UserRepository
from store_api.schemas.order import (
    AdminOrderRead,
    AutoConfirmResult,
    AutoConfirmStats,
    CheckoutRequest,
    OrderRead,
    OrderStats,
    OrderStatus,
    OrderStatusChange,
    OrderStatusUpdate,
    OrderWithItemsRead,
    StatsPeriod,
)
from store_api.schemas.stats import SalesGrouping, SalesPerformance
from store_api.services.inventory_service import InventoryService
from store_api.services.notification_service import NotificationService
from store_api.services.order_service import OrderService
from store_api.services.stats_service import StatsService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
product_repo = ProductRepository()
notification_repo = NotificationRepository()
notifications = NotificationService(notification_repo)
inventory = InventoryService(product_repo, StockMovementRepository(), notifications)
service = OrderService(
    order_repo,
    CartRepository(),
    product_repo,
    UserRepository(),
    inventory,
    notifications,
)
stats_service = StatsService(StatsRepository(), order_repo, notification_repo)


# -------- Customer endpoints --------


@router.post(
    "/checkout",
    response_model=OrderWithItemsRead,
)
def checkout(
    payload: CheckoutRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Create an order from the current user's cart.

    Stock is deducted immediately (stock_out movements referencing the
    order) and the cart is emptied. Payment happens at the counter.
    """
    return service.checkout(session, current_user, payload)


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders (without items).
    """
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Get a single order (items + status history) of the current user.
    """
    return service.get_user_order(session, current_user, order_id)


@router.post(
    "/me/{order_id}/cancel",
    response_model=OrderStatusChange,
)
def cancel_my_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Cancel an own order while it is still pending. Stock is restored.
    """
    return service.cancel_my_order(session, current_user, order_id)


@router.post(
    "/me/{order_id}/confirm-receipt",
    response_model=OrderStatusChange,
)
def confirm_receipt(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Confirm pickup of an order that is ready_for_pickup.
    """
    return service.confirm_receipt(session, current_user, order_id)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[AdminOrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    status: OrderStatus | None = None,
):
    """
    List all orders with customer name, student id and item count.
    """
    return service.list_all_orders(session, skip, limit, status)


@router.get(
    "/stats",
    response_model=OrderStats,
    dependencies=[Depends(require_admin)],
)
def order_stats(
    period: StatsPeriod = "month",
    session: Session = Depends(get_session),
):
    return stats_service.get_order_stats(session, period)


@router.get(
    "/sales-performance",
    response_model=SalesPerformance,
    dependencies=[Depends(require_admin)],
)
def sales_performance(
    group_by: SalesGrouping = "day",
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    session: Session = Depends(get_session),
):
    """
    Sales report for the admin reports page. Both dates are optional and
    inclusive.
    """
    return stats_service.get_sales_performance(session, group_by, start_date, end_date)


@router.get(
    "/auto-confirm/stats",
    response_model=AutoConfirmStats,
    dependencies=[Depends(require_admin)],
)
def auto_confirm_stats(session: Session = Depends(get_session)):
    """
    Claimed orders due for auto-confirm now, tomorrow and in two days.
    """
    return stats_service.get_auto_confirm_stats(session)


@router.post(
    "/auto-confirm",
    response_model=AutoConfirmResult,
    dependencies=[Depends(require_admin)],
)
def run_auto_confirm(session: Session = Depends(get_session)):
    """
    Complete every order claimed at least AUTO_CONFIRM_DAYS ago.

    Same job the background sweep runs; exposed for manual triggering.
    """
    return service.auto_confirm_claimed_orders(session)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: int,
    session: Session = Depends(get_session),
):
    return service.get_order_admin(session, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderStatusChange,
)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Update order status (admin only).

      pending          -> processing, cancelled

      processing       -> ready_for_pickup, cancelled

      ready_for_pickup -> claimed, delivered, cancelled

      claimed          -> completed, refunded

      delivered        -> completed, refunded

    Cancelling or refunding puts the items back in stock.
    """
    return service.update_status(session, order_id, payload, admin)
