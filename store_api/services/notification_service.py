# store_api/services/notification_service.py
import logging
import math
import uuid
from typing import Any, Iterable

from fastapi import HTTPException, status
from sqlalchemy import event
from sqlmodel import Session

from store_api.core.realtime import ADMIN_ROOM, broadcaster, user_room
from store_api.models.notification import Notification
from store_api.models.order import Order, OrderItem
from store_api.models.product import Product
from store_api.models.user import User
from store_api.repositories.notification_repo import NotificationRepository
from store_api.schemas.notification import (
    NotificationCreate,
    NotificationPage,
    NotificationRead,
    Pagination,
    UnreadCount,
)

logger = logging.getLogger(__name__)

# session.info key holding (room, event, payload) tuples awaiting commit
_PENDING_EVENTS = "pending_realtime_events"

ORDER_STATUS_TEXT: dict[str, tuple[str, str]] = {
    "pending": (
        "Order Placed",
        "Your order for {summary} has been placed and is pending confirmation.",
    ),
    "processing": (
        "Order Received",
        "Thank you! Your order for {summary} has been received and is being processed.",
    ),
    "ready_for_pickup": (
        "Ready for Pickup",
        "Your order for {summary} is ready for pickup at the accounting office!",
    ),
    "claimed": (
        "Order Claimed",
        "You have claimed your order for {summary}. Thank you for shopping with us!",
    ),
    "completed": (
        "Order Completed",
        "Your order for {summary} is now complete.",
    ),
    "delivered": (
        "Order Delivered",
        "Your order for {summary} has been delivered successfully!",
    ),
    "cancelled": (
        "Order Cancelled",
        "Your order for {summary} has been cancelled.",
    ),
    "refunded": (
        "Order Refunded",
        "Your order for {summary} has been refunded.",
    ),
}

PAYMENT_TEXT: dict[str, str] = {
    "paid": "Payment for order #{order_id} has been received successfully.",
    "failed": "Payment for order #{order_id} has failed. Please try again.",
    "unpaid": "Payment for order #{order_id} is pending confirmation.",
}


# -------- Deferred real-time delivery --------


def queue_event(session: Session, room: str, event_name: str, data: dict[str, Any]) -> None:
    """
    Schedule a real-time event to be published once `session` commits.
    Rolled-back transactions publish nothing.
    """
    session.info.setdefault(_PENDING_EVENTS, []).append((room, event_name, data))


def _publish_pending(session) -> None:
    for room, event_name, data in session.info.pop(_PENDING_EVENTS, []):
        broadcaster.publish(room, event_name, data)


def _discard_pending(session) -> None:
    session.info.pop(_PENDING_EVENTS, None)


event.listen(Session, "after_commit", _publish_pending)
event.listen(Session, "after_rollback", _discard_pending)


# -------- Text helpers --------


def _item_label(item: OrderItem, with_price: bool = False) -> str:
    label = f"{item.quantity}x {item.product_name or f'Product #{item.product_id}'}"
    if item.size:
        label += f" ({item.size})"
    if with_price:
        label += f" - ₱{item.quantity * item.unit_price:.2f}"
    return label


def summarize_items(items: Iterable[OrderItem], with_price: bool = False) -> str:
    """
    Human summary of order lines:
      1-3 items: "2x Polo (M), 1x ID Lace"
      more:      "2x Polo (M) and 3 more items"
    """
    items = list(items)
    if not items:
        return "your items"
    if len(items) <= 3:
        return ", ".join(_item_label(it, with_price) for it in items)
    return f"{_item_label(items[0], with_price)} and {len(items) - 1} more items"


class NotificationService:
    """
    Notification persistence + fan-out.

    Trigger helpers (order status, new order, low stock, payment) only
    flush; the calling service owns the transaction and the commit, which
    also releases the queued real-time events.
    """

    def __init__(self, repo: NotificationRepository):
        self.repo = repo

    # -------- Dispatch --------

    def notify_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        message: str,
        title: str | None = None,
        type: str = "system",
        related_id: int | None = None,
    ) -> Notification:
        notification = self.repo.add(
            session,
            Notification(
                user_id=user_id,
                title=title,
                message=message,
                type=type,
                related_id=related_id,
            ),
        )
        payload = NotificationRead.model_validate(notification).model_dump()
        queue_event(session, user_room(user_id), "new-notification", payload)
        logger.info("Notification #%s queued for user %s: %s", notification.id, user_id, title)
        return notification

    def notify_admins(
        self,
        session: Session,
        message: str,
        title: str | None = None,
        type: str = "admin_order",
        related_id: int | None = None,
    ) -> Notification:
        """
        One broadcast row (user_id=None) shared by every admin.
        """
        notification = self.repo.add(
            session,
            Notification(
                user_id=None,
                title=title,
                message=message,
                type=type,
                related_id=related_id,
            ),
        )
        payload = NotificationRead.model_validate(notification).model_dump()
        queue_event(session, ADMIN_ROOM, "admin-notification", payload)
        logger.info("Admin notification #%s queued: %s", notification.id, title)
        return notification

    # -------- Domain triggers --------

    def order_status_changed(
        self,
        session: Session,
        order: Order,
        items: list[OrderItem],
        previous_status: str | None,
    ) -> Notification:
        summary = summarize_items(items)
        title, template = ORDER_STATUS_TEXT.get(
            order.status,
            ("Order Update", "Your order for {summary} status has been updated to {status}."),
        )
        notification = self.notify_user(
            session,
            order.user_id,
            template.format(summary=summary, status=order.status),
            title=title,
            type="order",
            related_id=order.id,
        )
        change = {
            "order_id": order.id,
            "status": order.status,
            "previous_status": previous_status,
            "user_id": order.user_id,
        }
        queue_event(session, user_room(order.user_id), "order-status-updated", change)
        queue_event(session, ADMIN_ROOM, "admin-order-updated", change)
        return notification

    def new_order_for_admins(
        self,
        session: Session,
        order: Order,
        items: list[OrderItem],
        customer: User,
    ) -> Notification:
        summary = summarize_items(items, with_price=True)
        who = customer.name
        if customer.student_id:
            who = f"{who} ({customer.student_id})"

        if order.payment_method == "gcash":
            message = (
                f"New GCash order from {who}: {summary}. "
                f"Total: ₱{order.total_amount:.2f}. Payment pending at counter."
            )
        else:
            message = (
                f"New cash order from {who}: {summary}. "
                f"Total: ₱{order.total_amount:.2f}. Payment at counter."
            )

        notification = self.notify_admins(
            session,
            message,
            title="New Order Received",
            type="admin_order",
            related_id=order.id,
        )
        queue_event(
            session,
            ADMIN_ROOM,
            "new-order",
            {"order_id": order.id, "total_amount": order.total_amount, "customer": customer.name},
        )
        return notification

    def low_stock(
        self,
        session: Session,
        product: Product,
        current_stock: int,
        size: str | None = None,
    ) -> Notification:
        name = f"{product.name} ({size})" if size else product.name
        notification = self.notify_admins(
            session,
            f"Low stock alert: {name} has only {current_stock} items remaining.",
            title="Low Stock Alert",
            type="low_stock",
            related_id=product.id,
        )
        queue_event(
            session,
            ADMIN_ROOM,
            "low-stock-alert",
            {"product_id": product.id, "name": name, "stock": current_stock},
        )
        return notification

    def payment_changed(self, session: Session, order: Order) -> Notification:
        template = PAYMENT_TEXT.get(
            order.payment_status,
            "Payment status for order #{order_id} has been updated.",
        )
        return self.notify_user(
            session,
            order.user_id,
            template.format(order_id=order.id),
            title="Payment Update",
            type="payment",
            related_id=order.id,
        )

    # -------- Inbox (REST polling) --------

    def list_for_user(
        self,
        session: Session,
        user: User,
        page: int = 1,
        limit: int = 10,
    ) -> NotificationPage:
        is_admin = user.role == "admin"
        rows = self.repo.list_for_user(
            session, user.id, is_admin, skip=(page - 1) * limit, limit=limit
        )
        total = self.repo.count_for_user(session, user.id, is_admin)
        return NotificationPage(
            notifications=[NotificationRead.model_validate(r) for r in rows],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if total else 0,
            ),
        )

    def unread_count(self, session: Session, user: User) -> UnreadCount:
        count = self.repo.count_for_user(
            session, user.id, user.role == "admin", unread_only=True
        )
        return UnreadCount(count=count)

    def _get_owned(self, session: Session, user: User, notification_id: int) -> Notification:
        notification = self.repo.get_visible(
            session, notification_id, user.id, user.role == "admin"
        )
        if not notification:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Notification not found",
            )
        return notification

    def mark_as_read(self, session: Session, user: User, notification_id: int) -> Notification:
        notification = self._get_owned(session, user, notification_id)
        notification.is_read = True
        return self.repo.save(session, notification)

    def mark_all_as_read(self, session: Session, user: User) -> int:
        return self.repo.mark_all_read(session, user.id, user.role == "admin")

    def delete(self, session: Session, user: User, notification_id: int) -> None:
        notification = self._get_owned(session, user, notification_id)
        self.repo.delete(session, notification)

    def create_manual(
        self,
        session: Session,
        payload: NotificationCreate,
        recipient: User | None,
    ) -> Notification:
        """
        Admin-authored notification for a single user.
        """
        if recipient is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        notification = self.notify_user(
            session,
            recipient.id,
            payload.message,
            title=payload.title,
            type="system",
        )
        session.commit()
        session.refresh(notification)
        return notification
