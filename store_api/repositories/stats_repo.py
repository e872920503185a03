# store_api/repositories/stats_repo.py
from datetime import datetime

from sqlalchemy import String, cast, func, literal_column
from sqlmodel import Session, select

from store_api.models.order import Order, OrderItem
from store_api.models.product import Product
from store_api.models.user import User

# Orders that never turned into revenue
NON_REVENUE_STATUSES = ("cancelled", "refunded")

_counts_as_revenue = Order.status.not_in(NON_REVENUE_STATUSES)


def _amount_sum():
    return func.coalesce(func.sum(Order.total_amount), 0.0)


# Leading characters of YYYY-MM-DD that identify each period
PERIOD_KEY_LENGTH = {"day": 10, "month": 7, "year": 4}


def _created_between(start: datetime | None, end: datetime | None) -> list:
    conditions = []
    if start is not None:
        conditions.append(Order.created_at >= start)
    if end is not None:
        conditions.append(Order.created_at <= end)
    return conditions


class StatsRepository:
    """
    Read-only aggregated queries for admin dashboards.

    Date bucketing uses func.date(), which both Postgres and SQLite
    understand; month/period filters are plain range comparisons.
    """

    @staticmethod
    def _count(session: Session, model, *conditions) -> int:
        stmt = select(func.count()).select_from(model)
        if conditions:
            stmt = stmt.where(*conditions)
        return int(session.exec(stmt).one() or 0)

    def count_customers(self, session: Session) -> int:
        return self._count(session, User, User.role == "user")

    def count_orders(self, session: Session) -> int:
        return self._count(session, Order)

    def count_low_stock(self, session: Session) -> int:
        return self._count(
            session,
            Product,
            Product.is_active == True,  # noqa: E712
            Product.stock <= Product.reorder_point,
        )

    def total_revenue(self, session: Session) -> float:
        """Sum of total_amount over orders that were not cancelled or refunded."""
        value = session.exec(select(_amount_sum()).where(_counts_as_revenue)).one()
        return float(value or 0.0)

    def daily_sales(
        self,
        session: Session,
        start: datetime,
        end: datetime,
    ) -> list[tuple]:
        """(day, revenue, order_count) rows for days in [start, end)."""
        day = func.date(Order.created_at)
        stmt = (
            select(
                day.label("day"),
                _amount_sum().label("revenue"),
                func.count(Order.id).label("order_count"),
            )
            .where(_counts_as_revenue, Order.created_at >= start, Order.created_at < end)
            .group_by(day)
            .order_by(day)
        )
        return list(session.exec(stmt).all())

    def top_products(
        self,
        session: Session,
        limit: int = 5,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[tuple]:
        """Best sellers by units across revenue orders, optionally in [start, end]."""
        units = func.coalesce(func.sum(OrderItem.quantity), 0)
        stmt = (
            select(
                OrderItem.product_id,
                Product.name,
                units.label("total_quantity"),
                func.coalesce(func.sum(OrderItem.quantity * OrderItem.unit_price), 0.0).label("total_revenue"),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .join(Product, Product.id == OrderItem.product_id)
            .where(_counts_as_revenue)
            .where(*_created_between(start, end))
            .group_by(OrderItem.product_id, Product.name)
            .order_by(units.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def sales_by_period(
        self,
        session: Session,
        group_by: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[tuple]:
        """
        (period, orders, revenue, avg_order_value) rows, newest period first.

        The period key is "YYYY-MM-DD", "YYYY-MM" or "YYYY", cut from the
        order date so the same SQL runs on Postgres and SQLite.
        """
        period = func.substr(
            cast(func.date(Order.created_at), String),
            literal_column("1"),
            literal_column(str(PERIOD_KEY_LENGTH[group_by])),
        )
        stmt = (
            select(
                period.label("period"),
                func.count(Order.id),
                _amount_sum(),
                func.avg(Order.total_amount),
            )
            .where(_counts_as_revenue, *_created_between(start, end))
            .group_by(period)
            .order_by(period.desc())
        )
        return list(session.exec(stmt).all())

    def latest_orders(self, session: Session, limit: int = 5) -> list[tuple[Order, str]]:
        """Newest orders of any status, paired with the customer name."""
        stmt = (
            select(Order, User.name)
            .join(User, User.id == Order.user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    # ---- Order statistics ----

    def order_totals(
        self,
        session: Session,
        since: datetime | None,
    ) -> tuple[int, float, float]:
        """
        (order_count, revenue, average order value) since a cutoff.
        """
        stmt = select(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0.0),
            func.coalesce(func.avg(Order.total_amount), 0.0),
        )
        if since is not None:
            stmt = stmt.where(Order.created_at >= since)
        count, revenue, avg = session.exec(stmt).one()
        return int(count or 0), float(revenue or 0.0), float(avg or 0.0)

    def status_counts(
        self,
        session: Session,
        since: datetime | None,
    ) -> dict[str, int]:
        stmt = select(Order.status, func.count(Order.id))
        if since is not None:
            stmt = stmt.where(Order.created_at >= since)
        stmt = stmt.group_by(Order.status)
        return {status: int(count) for status, count in session.exec(stmt).all()}

    def daily_orders(self, session: Session, since: datetime) -> list[tuple]:
        day_expr = func.date(Order.created_at)
        stmt = (
            select(
                day_expr.label("day"),
                func.count(Order.id),
                func.coalesce(func.sum(Order.total_amount), 0.0),
            )
            .where(Order.created_at >= since)
            .group_by(day_expr)
            .order_by(day_expr.desc())
        )
        return list(session.exec(stmt).all())

    def count_claimed_between(
        self,
        session: Session,
        older_than: datetime | None = None,
        newer_than: datetime | None = None,
    ) -> int:
        """
        Claimed orders whose last update falls in (newer_than, older_than].
        """
        stmt = select(func.count()).select_from(Order).where(Order.status == "claimed")
        if older_than is not None:
            stmt = stmt.where(Order.updated_at <= older_than)
        if newer_than is not None:
            stmt = stmt.where(Order.updated_at > newer_than)
        return int(session.exec(stmt).one() or 0)
