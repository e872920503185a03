# store_api/schemas/stats.py
import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel

from store_api.schemas.order import OrderRead, OrderStatus


class DailySales(SQLModel):
    """
    Revenue per day for a given month/year.
    """
    model_config = ConfigDict(extra="forbid")

    date: date
    total_revenue: float
    order_count: int


class TopProduct(SQLModel):
    """
    Aggregated stats for top-selling products.
    """
    model_config = ConfigDict(extra="forbid")

    product_id: int
    name: str
    total_quantity: int
    total_revenue: float


class LatestOrderSummary(SQLModel):
    """
    Lightweight info for last N orders.
    """
    model_config = ConfigDict(extra="forbid")

    id: int
    created_at: datetime
    user_id: uuid.UUID
    user_name: str | None
    total_amount: float
    status: OrderStatus


class AdminDashboardStats(SQLModel):
    """
    Full payload for admin dashboard.
    """
    model_config = ConfigDict(extra="forbid")

    total_customers: int
    total_orders: int
    total_revenue: float
    low_stock_products: int
    daily_sales: list[DailySales]
    top_products: list[TopProduct]
    latest_orders: list[LatestOrderSummary]


SalesGrouping = Literal["day", "month", "year"]


class SalesPeriod(SQLModel):
    period: str
    orders: int
    revenue: float
    avg_order_value: float


class SalesPerformance(SQLModel):
    """
    Sales per day, month or year over an optional date range, with the
    best sellers of the same range.
    """
    group_by: SalesGrouping
    start_date: datetime | None = None
    end_date: datetime | None = None
    sales: list[SalesPeriod]
    top_products: list[TopProduct]


class UserDashboard(SQLModel):
    orders: list[OrderRead]
    unread_notifications: int
