# store_api/services/order_service.py
import logging
import smtplib
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from store_api.core import email_client
from store_api.core.config import get_settings
from store_api.models.cart import CartItem
from store_api.models.order import Order, OrderItem, OrderStatusLog
from store_api.models.product import Product
from store_api.models.user import User
from store_api.repositories.cart_repo import CartRepository
from store_api.repositories.order_repo import OrderRepository
from store_api.repositories.product_repo import ProductRepository
from store_api.repositories.user_repo import UserRepository
from store_api.schemas.order import (
    AdminOrderRead,
    AutoConfirmResult,
    CheckoutRequest,
    OrderItemRead,
    OrderRead,
    OrderStatusChange,
    OrderStatusLogRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from store_api.services.inventory_service import STOCK_IN, STOCK_OUT, InventoryService
from store_api.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

# Allowed forward moves; anything missing here is terminal.
TRANSITIONS: dict[str, set[str]] = {
    "pending": {"processing", "cancelled"},
    "processing": {"ready_for_pickup", "cancelled"},
    "ready_for_pickup": {"claimed", "delivered", "cancelled"},
    "claimed": {"completed", "refunded"},
    "delivered": {"completed", "refunded"},
    "completed": set(),
    "cancelled": set(),
    "refunded": set(),
}

# Transitions that put the ordered units back on the shelf
RESTOCK_REASONS: dict[str, str] = {
    "cancelled": "order_cancelled",
    "refunded": "order_refunded",
}


def order_reference(order_id: int) -> str:
    return f"ORDER-{order_id}"


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Checkout: turn the cart into an order, deducting stock through
        stock_out movements in the same transaction
      - Status transitions (admin, customer cancel / confirm receipt,
        auto-confirm) with audit log, restock and notifications
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        user_repo: UserRepository,
        inventory: InventoryService,
        notifications: NotificationService,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.user_repo = user_repo
        self.inventory = inventory
        self.notifications = notifications

    # -------- Checkout --------

    def _validate_cart(
        self,
        session: Session,
        cart_items: list[CartItem],
    ) -> dict[int, Product]:
        """
        Lock every product in the cart and check it can be sold.

        Raises HTTPException(400) listing every problem at once.
        """
        errors: list[dict[str, str]] = []
        products: dict[int, Product] = {}

        for ci in cart_items:
            if ci.product_id not in products:
                product = self.product_repo.get_for_update(session, ci.product_id)
                if product is not None:
                    products[ci.product_id] = product
            product = products.get(ci.product_id)
            label = ci.product_name or f"Product #{ci.product_id}"

            if not product:
                errors.append({"product_id": str(ci.product_id), "reason": "Product not found"})
                continue

            if not product.is_active:
                errors.append({"product_id": str(ci.product_id), "reason": f"{label} is no longer available"})
                continue

            if ci.size is not None:
                variant = self.product_repo.get_size(session, product.id, ci.size, lock=True)
                if variant is None:
                    errors.append(
                        {"product_id": str(ci.product_id), "reason": f"Size {ci.size} of {label} is no longer available"}
                    )
                    continue
                available = variant.stock
            else:
                if self.product_repo.has_sizes(session, product.id):
                    errors.append({"product_id": str(ci.product_id), "reason": f"Please select a size for {label}"})
                    continue
                available = product.stock

            if ci.quantity > available:
                errors.append(
                    {
                        "product_id": str(ci.product_id),
                        "reason": f"Insufficient stock for {label} (have {available}, requested {ci.quantity})",
                    }
                )

        if errors:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Cart validation failed", "items": errors},
            )
        return products

    def checkout(
        self,
        session: Session,
        customer: User,
        payload: CheckoutRequest,
    ) -> OrderWithItemsRead:
        """
        Convert the current user's cart into an Order.

        Steps (single transaction):
          1. Load and validate the cart (locks product rows).
          2. Create the Order (pending / unpaid) and its items.
          3. Record a stock_out movement per item (reference ORDER-<id>).
          4. Write the initial status log row and notifications.
          5. Clear the cart and commit.
        """
        cart_items: list[CartItem] = self.cart_repo.list_for_user(session, customer.id)
        if not cart_items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty",
            )

        products = self._validate_cart(session, cart_items)

        total_amount = sum(ci.quantity * ci.snapshot_price for ci in cart_items)
        if total_amount <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Total order amount must be positive",
            )

        order = self.order_repo.create_order(
            session,
            Order(
                user_id=customer.id,
                status="pending",
                payment_method=payload.payment_method,
                pay_at_counter=payload.pay_at_counter,
                payment_status="unpaid",
                total_amount=round(total_amount, 2),
            ),
        )

        items = self.order_repo.create_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    product_id=ci.product_id,
                    product_name=ci.product_name or products[ci.product_id].name,
                    size=ci.size,
                    quantity=ci.quantity,
                    unit_price=ci.snapshot_price,
                )
                for ci in cart_items
            ],
        )

        reference = order_reference(order.id)
        for item in items:
            self.inventory.apply_movement(
                session,
                product=products[item.product_id],
                size=item.size,
                movement_type=STOCK_OUT,
                delta=-item.quantity,
                reason="order",
                performed_by=customer.id,
                reference=reference,
            )

        self.order_repo.add_status_log(
            session,
            OrderStatusLog(
                order_id=order.id,
                old_status=None,
                new_status="pending",
                notes="Order placed",
                changed_by=customer.id,
            ),
        )

        self.notifications.order_status_changed(session, order, items, None)
        self.notifications.new_order_for_admins(session, order, items, customer)

        self.cart_repo.clear_user_cart(session, customer.id, commit=False)

        session.commit()
        session.refresh(order)

        logger.info(
            "Order #%s placed by %s: %d item(s), total %.2f via %s",
            order.id,
            customer.id,
            len(items),
            order.total_amount,
            order.payment_method,
        )
        return self._build_order_with_items_dto(session, order, customer)

    # -------- Reads --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        return self.order_repo.list_for_user(session, user_id, skip, limit)

    def _get_own_order(self, session: Session, user_id: uuid.UUID, order_id: int) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def get_user_order(
        self,
        session: Session,
        user: User,
        order_id: int,
    ) -> OrderWithItemsRead:
        """
        404 if order not found or does not belong to this user.
        """
        order = self._get_own_order(session, user.id, order_id)
        return self._build_order_with_items_dto(session, order, user)

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status_filter: str | None = None,
    ) -> list[AdminOrderRead]:
        rows = self.order_repo.list_all_with_customer(session, skip, limit, status_filter)
        return [
            AdminOrderRead(
                **order.model_dump(),
                user_name=customer.name,
                student_id=customer.student_id,
                email=customer.email,
                item_count=int(item_count or 0),
            )
            for order, customer, item_count in rows
        ]

    def get_order_admin(
        self,
        session: Session,
        order_id: int,
    ) -> OrderWithItemsRead:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        customer = self.user_repo.get_by_id(session, order.user_id)
        return self._build_order_with_items_dto(session, order, customer)

    # -------- Status transitions --------

    def _restock(
        self,
        session: Session,
        order: Order,
        items: list[OrderItem],
        reason: str,
        actor_id: uuid.UUID | None,
    ) -> None:
        reference = order_reference(order.id)
        for item in items:
            product = self.product_repo.get_for_update(session, item.product_id)
            if product is None:
                logger.warning(
                    "Cannot restock product %s for order #%s: product is gone",
                    item.product_id,
                    order.id,
                )
                continue
            self.inventory.apply_movement(
                session,
                product=product,
                size=item.size,
                movement_type=STOCK_IN,
                delta=item.quantity,
                reason=reason,
                performed_by=actor_id,
                reference=reference,
            )

    def _transition(
        self,
        session: Session,
        order: Order,
        new_status: str,
        actor_id: uuid.UUID | None,
        notes: str | None = None,
    ) -> str:
        """
        Move `order` to `new_status` without committing.

        Returns the previous status. Raises HTTPException(400) when the
        move is not allowed from the current status.
        """
        current = order.status
        if new_status not in TRANSITIONS.get(current, set()):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status transition: {current} -> {new_status}",
            )

        items = self.order_repo.list_items_for_order(session, order.id)

        if new_status in RESTOCK_REASONS:
            self._restock(session, order, items, RESTOCK_REASONS[new_status], actor_id)

        if new_status == "refunded" and order.payment_status == "paid":
            order.payment_status = "refunded"

        order.status = new_status
        order.updated_at = datetime.now(timezone.utc)
        self.order_repo.update_order(session, order)

        self.order_repo.add_status_log(
            session,
            OrderStatusLog(
                order_id=order.id,
                old_status=current,
                new_status=new_status,
                notes=notes,
                changed_by=actor_id,
            ),
        )

        self.notifications.order_status_changed(session, order, items, current)

        logger.info(
            "Order #%s: %s -> %s (by %s)",
            order.id,
            current,
            new_status,
            actor_id or "system",
        )
        return current

    def _lock_order(self, session: Session, order_id: int) -> Order:
        order = self.order_repo.get_for_update(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _change_result(self, order: Order, previous: str, message: str) -> OrderStatusChange:
        return OrderStatusChange(
            order=OrderRead.model_validate(order),
            previous_status=previous,
            new_status=order.status,
            message=message,
        )

    def update_status(
        self,
        session: Session,
        order_id: int,
        payload: OrderStatusUpdate,
        actor: User,
    ) -> OrderStatusChange:
        """
        Admin status update.

        Same-status requests are a no-op; invalid moves raise 400.
        """
        order = self._lock_order(session, order_id)

        if order.status == payload.status:
            return self._change_result(order, order.status, f"Order is already {order.status}")

        previous = self._transition(session, order, payload.status, actor.id, payload.notes)
        session.commit()
        session.refresh(order)

        return self._change_result(
            order,
            previous,
            f"Order status updated from {previous} to {order.status}",
        )

    def cancel_my_order(
        self,
        session: Session,
        user: User,
        order_id: int,
    ) -> OrderStatusChange:
        """
        Customers may cancel their own orders while still pending.
        """
        order = self._get_own_order(session, user.id, order_id)
        order = self._lock_order(session, order.id)
        if order.status != "pending":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only pending orders can be cancelled",
            )

        previous = self._transition(session, order, "cancelled", user.id, "Cancelled by customer")
        self.notifications.notify_admins(
            session,
            f"Order #{order.id} was cancelled by {user.name}.",
            title="Order Cancelled",
            type="admin_order",
            related_id=order.id,
        )
        session.commit()
        session.refresh(order)
        return self._change_result(order, previous, "Order cancelled")

    def confirm_receipt(
        self,
        session: Session,
        user: User,
        order_id: int,
    ) -> OrderStatusChange:
        """
        Customer confirms pickup: ready_for_pickup -> claimed.
        """
        order = self._get_own_order(session, user.id, order_id)
        order = self._lock_order(session, order.id)
        if order.status != "ready_for_pickup":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only orders ready for pickup can be confirmed",
            )

        previous = self._transition(session, order, "claimed", user.id, "Pickup confirmed by customer")
        session.commit()
        session.refresh(order)
        return self._change_result(order, previous, "Order marked as claimed")

    # -------- Auto-confirm --------

    def auto_confirm_claimed_orders(
        self,
        session: Session,
        days: int | None = None,
    ) -> AutoConfirmResult:
        """
        Complete every order claimed at least `days` ago.

        Each order is committed on its own so one failure does not
        roll back the others. Receipts are emailed after commit.
        """
        days = days if days is not None else get_settings().AUTO_CONFIRM_DAYS
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)

        confirmed: list[int] = []
        for candidate in self.order_repo.list_claimed_before(session, cutoff):
            order = self.order_repo.get_for_update(session, candidate.id)
            if order is None or order.status != "claimed":
                continue

            customer = self.user_repo.get_by_id(session, order.user_id)
            self._transition(
                session,
                order,
                "completed",
                None,
                f"Auto-confirmed after {days} days",
            )
            self.notifications.notify_admins(
                session,
                f"Order #{order.id} from {customer.name if customer else 'a customer'} "
                f"was auto-confirmed as completed.",
                title="Order Auto-Confirmed",
                type="admin_order",
                related_id=order.id,
            )
            session.commit()
            confirmed.append(order.id)

            if customer is not None:
                self._send_receipt(session, order, customer)

        if confirmed:
            logger.info("Auto-confirmed %d claimed order(s): %s", len(confirmed), confirmed)
        return AutoConfirmResult(confirmed_order_ids=confirmed)

    def _send_receipt(self, session: Session, order: Order, customer: User) -> None:
        """
        Best-effort order receipt; failures are logged, never raised.
        """
        if not email_client.is_configured():
            logger.info("SMTP not configured; skipping receipt for order #%s", order.id)
            return

        items = self.order_repo.list_items_for_order(session, order.id)
        lines = [
            f"Hi {customer.name},",
            "",
            f"Your order #{order.id} is complete. Thank you for shopping with us!",
            "",
        ]
        for it in items:
            size = f" ({it.size})" if it.size else ""
            lines.append(
                f"  {it.quantity}x {it.product_name}{size}  ₱{it.quantity * it.unit_price:.2f}"
            )
        lines += [
            "",
            f"Total: ₱{order.total_amount:.2f}",
            f"Payment: {order.payment_method.upper()} ({order.payment_status})",
        ]

        try:
            email_client.send_email(
                customer.email,
                f"Receipt for order #{order.id}",
                "\n".join(lines),
            )
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send receipt for order #%s", order.id)

    # -------- Helper DTO builder --------

    def _build_order_with_items_dto(
        self,
        session: Session,
        order: Order,
        customer: User | None,
    ) -> OrderWithItemsRead:
        items = self.order_repo.list_items_for_order(session, order.id)
        logs = self.order_repo.list_status_logs(session, order.id)

        item_dtos = [
            OrderItemRead(
                id=it.id,
                order_id=it.order_id,
                product_id=it.product_id,
                product_name=it.product_name,
                size=it.size,
                quantity=it.quantity,
                unit_price=it.unit_price,
                line_total=it.quantity * it.unit_price,
            )
            for it in items
        ]

        return OrderWithItemsRead(
            **order.model_dump(),
            user_name=customer.name if customer else None,
            student_id=customer.student_id if customer else None,
            email=customer.email if customer else None,
            item_count=len(item_dtos),
            items=item_dtos,
            status_history=[OrderStatusLogRead.model_validate(log) for log in logs],
        )
