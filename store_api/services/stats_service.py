# store_api/services/stats_service.py
from datetime import MAXYEAR, MINYEAR, date, datetime, timedelta, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from store_api.core.config import get_settings
from store_api.models.user import User
from store_api.repositories.notification_repo import NotificationRepository
from store_api.repositories.order_repo import OrderRepository
from store_api.repositories.stats_repo import StatsRepository
from store_api.schemas.order import (
    AutoConfirmStats,
    DailyOrderStats,
    OrderRead,
    OrderStats,
    StatusBreakdown,
)
from store_api.schemas.stats import (
    AdminDashboardStats,
    DailySales,
    LatestOrderSummary,
    SalesPerformance,
    SalesPeriod,
    TopProduct,
    UserDashboard,
)

PERIOD_DAYS: dict[str, int] = {
    "day": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    # Naive input is taken as UTC, the zone orders are stored in
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_top_product(row) -> TopProduct:
    product_id, name, total_quantity, revenue = row
    return TopProduct(
        product_id=product_id,
        name=name,
        total_quantity=int(total_quantity or 0),
        total_revenue=float(revenue or 0.0),
    )


def _as_date(value) -> date:
    # func.date() yields a date on Postgres and an ISO string on SQLite
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class StatsService:
    """
    Orchestrates aggregated dashboard statistics.
    """

    def __init__(
        self,
        repo: StatsRepository,
        order_repo: OrderRepository,
        notification_repo: NotificationRepository,
    ):
        self.repo = repo
        self.order_repo = order_repo
        self.notification_repo = notification_repo

    def get_admin_dashboard_stats(
        self,
        session: Session,
        year: int | None = None,
        month: int | None = None,
        top_n_products: int = 5,
        latest_n_orders: int = 5,
    ) -> AdminDashboardStats:
        # Default to current month/year if not provided
        today = datetime.now(timezone.utc).date()
        if year is None:
            year = today.year
        if month is None:
            month = today.month

        if not MINYEAR <= year < MAXYEAR:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"year must be between {MINYEAR} and {MAXYEAR - 1}",
            )
        if not 1 <= month <= 12:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="month must be between 1 and 12",
            )

        start = datetime(year, month, 1, tzinfo=timezone.utc)
        end = (
            datetime(year + 1, 1, 1, tzinfo=timezone.utc)
            if month == 12
            else datetime(year, month + 1, 1, tzinfo=timezone.utc)
        )

        daily_sales = [
            DailySales(
                date=_as_date(day),
                total_revenue=float(revenue or 0.0),
                order_count=int(order_count or 0),
            )
            for day, revenue, order_count in self.repo.daily_sales(session, start, end)
        ]

        top_products = [
            _to_top_product(row)
            for row in self.repo.top_products(session, limit=top_n_products)
        ]

        latest_orders = [
            LatestOrderSummary(
                id=o.id,
                created_at=o.created_at,
                user_id=o.user_id,
                user_name=user_name,
                total_amount=o.total_amount,
                status=o.status,
            )
            for o, user_name in self.repo.latest_orders(session, limit=latest_n_orders)
        ]

        return AdminDashboardStats(
            total_customers=self.repo.count_customers(session),
            total_orders=self.repo.count_orders(session),
            total_revenue=self.repo.total_revenue(session),
            low_stock_products=self.repo.count_low_stock(session),
            daily_sales=daily_sales,
            top_products=top_products,
            latest_orders=latest_orders,
        )

    def get_user_dashboard(
        self,
        session: Session,
        user: User,
        limit: int = 10,
    ) -> UserDashboard:
        orders = self.order_repo.list_for_user(session, user.id, 0, limit)
        unread = self.notification_repo.count_for_user(
            session, user.id, user.role == "admin", unread_only=True
        )
        return UserDashboard(
            orders=[OrderRead.model_validate(o) for o in orders],
            unread_notifications=unread,
        )

    def get_order_stats(self, session: Session, period: str = "month") -> OrderStats:
        """
        Totals and status breakdown for the period, daily figures for
        the last 30 days.
        """
        now = datetime.now(timezone.utc)
        since = now - timedelta(days=PERIOD_DAYS[period])

        total_orders, total_revenue, avg_value = self.repo.order_totals(session, since)
        breakdown = StatusBreakdown(**self.repo.status_counts(session, since))

        daily = [
            DailyOrderStats(
                date=_as_date(day).isoformat(),
                orders=int(count or 0),
                revenue=float(revenue or 0.0),
            )
            for day, count, revenue in self.repo.daily_orders(session, now - timedelta(days=30))
        ]

        return OrderStats(
            period=period,
            total_orders=total_orders,
            total_revenue=round(total_revenue, 2),
            avg_order_value=round(avg_value, 2),
            status_breakdown=breakdown,
            daily_stats=daily,
        )

    def get_sales_performance(
        self,
        session: Session,
        group_by: str = "day",
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> SalesPerformance:
        """
        Orders, revenue and average order value per period, newest first,
        plus the ten best sellers. Cancelled and refunded orders are left
        out, as on the dashboard.
        """
        start_date, end_date = _as_utc(start_date), _as_utc(end_date)
        if start_date and end_date and start_date > end_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="start_date must not be after end_date",
            )

        sales = [
            SalesPeriod(
                period=str(period),
                orders=int(orders or 0),
                revenue=round(float(revenue or 0.0), 2),
                avg_order_value=round(float(avg_value or 0.0), 2),
            )
            for period, orders, revenue, avg_value in self.repo.sales_by_period(
                session, group_by, start_date, end_date
            )
        ]
        top = self.repo.top_products(session, limit=10, start=start_date, end=end_date)

        return SalesPerformance(
            group_by=group_by,
            start_date=start_date,
            end_date=end_date,
            sales=sales,
            top_products=[_to_top_product(row) for row in top],
        )

    def get_auto_confirm_stats(self, session: Session) -> AutoConfirmStats:
        """
        How many claimed orders are due for auto-confirm now, tomorrow
        and the day after.
        """
        days = get_settings().AUTO_CONFIRM_DAYS
        now = datetime.now(timezone.utc)
        due_now = now - timedelta(days=days)
        due_tomorrow = due_now + timedelta(days=1)
        due_in_2_days = due_now + timedelta(days=2)

        return AutoConfirmStats(
            total_claimed_orders=self.repo.count_claimed_between(session),
            ready_for_auto_confirm=self.repo.count_claimed_between(session, older_than=due_now),
            will_be_ready_tomorrow=self.repo.count_claimed_between(
                session, older_than=due_tomorrow, newer_than=due_now
            ),
            will_be_ready_in_2_days=self.repo.count_claimed_between(
                session, older_than=due_in_2_days, newer_than=due_tomorrow
            ),
        )
