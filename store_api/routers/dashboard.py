# store_api/routers/dashboard.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from store_api.core.auth import require_admin, require_auth
from store_api.database import get_session
from store_api.models.user import User
from store_api.repositories.notification_repo import NotificationRepository
from store_api.repositories.order_repo import OrderRepository
from store_api.repositories.stats_repo import StatsRepository
from store_api.schemas.stats import AdminDashboardStats, UserDashboard
from store_api.services.stats_service import StatsService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

service = StatsService(StatsRepository(), OrderRepository(), NotificationRepository())


@router.get(
    "/admin",
    response_model=AdminDashboardStats,
    dependencies=[Depends(require_admin)],
)
def get_admin_dashboard_stats(
    year: int | None = None,
    month: int | None = None,
    session: Session = Depends(get_session),
):
    """
    Aggregated statistics for the admin dashboard.

    Query params (optional):
      - year: integer, defaults to current year
      - month: integer 1-12, defaults to current month

    Revenue excludes cancelled and refunded orders.
    """
    return service.get_admin_dashboard_stats(
        session=session,
        year=year,
        month=month,
    )


@router.get("/user", response_model=UserDashboard)
def get_user_dashboard(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Latest own orders and the unread notification count.
    """
    return service.get_user_dashboard(session, current_user)
