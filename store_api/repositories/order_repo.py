# store_api/repositories/order_repo.py
import uuid
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from store_api.models.order import Order, OrderItem, OrderStatusLog
from store_api.models.user import User


class OrderRepository:
    """
    Data access layer for orders, order_items and order_status_logs.

    NOTE:
      - No commits here; order creation and status transitions are
        multi-step transactions. The service calls session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def list_all_with_customer(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: str | None = None,
    ) -> list[tuple[Order, User, int]]:
        """
        Orders joined with their customer and item count, newest first.
        """
        item_count = (
            select(func.count(OrderItem.id))
            .where(OrderItem.order_id == Order.id)
            .correlate(Order)
            .scalar_subquery()
        )
        stmt = select(Order, User, item_count).join(User, User.id == Order.user_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = (
            stmt.order_by(Order.created_at.desc(), Order.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, order_id: int) -> Order | None:
        return session.get(Order, order_id)

    def get_for_update(self, session: Session, order_id: int) -> Order | None:
        stmt = select(Order).where(Order.id == order_id).with_for_update()
        return session.exec(stmt).first()

    def list_claimed_before(self, session: Session, cutoff: datetime) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.status == "claimed", Order.updated_at <= cutoff)
            .order_by(Order.updated_at)
        )
        return session.exec(stmt).all()

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: int,
    ) -> list[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
        )
        return session.exec(stmt).all()

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items

    # ---- Status history ----

    def add_status_log(self, session: Session, log: OrderStatusLog) -> OrderStatusLog:
        session.add(log)
        session.flush()
        return log

    def list_status_logs(self, session: Session, order_id: int) -> list[OrderStatusLog]:
        stmt = (
            select(OrderStatusLog)
            .where(OrderStatusLog.order_id == order_id)
            .order_by(OrderStatusLog.created_at.desc(), OrderStatusLog.id.desc())
        )
        return session.exec(stmt).all()
