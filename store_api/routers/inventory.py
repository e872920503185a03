# store_api/routers/inventory.py
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from store_api.core.auth import require_admin
from store_api.database import get_session
from store_api.models.user import User
from store_api.repositories.notification_repo import NotificationRepository
from store_api.repositories.product_repo import ProductRepository
from store_api.repositories.stock_movement_repo import StockMovementRepository
from store_api.schemas.stock_movement import (
    CurrentStockRow,
    LowStockAlert,
    MonthlyStockReport,
    MovementType,
    ProductStockDetail,
    StockMovementCreate,
    StockMovementRead,
    StockMovementSummary,
)
from store_api.services.inventory_service import InventoryService
from store_api.services.notification_service import NotificationService

# Every inventory endpoint is staff-only.
router = APIRouter(
    prefix="/stock-movements",
    tags=["Inventory"],
    dependencies=[Depends(require_admin)],
)

service = InventoryService(
    ProductRepository(),
    StockMovementRepository(),
    NotificationService(NotificationRepository()),
)


@router.post(
    "",
    response_model=StockMovementRead,
    status_code=status.HTTP_201_CREATED,
)
def record_movement(
    payload: StockMovementCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Record a stock movement.

    - stock_in / stock_out: `quantity` units in or out.
    - stock_adjustment: `physical_count` from a stock take; the difference
      to the current stock is recorded.
    - Sized products require `size`.
    """
    return service.record_movement(session, payload, admin.id)


@router.get("", response_model=list[StockMovementRead])
def list_movements(
    session: Session = Depends(get_session),
    product_id: int | None = None,
    movement_type: MovementType | None = None,
    size: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    skip: int = 0,
    limit: int = Query(default=50, le=500),
):
    """
    Ledger rows, newest first.
    """
    return service.list_movements(
        session,
        product_id=product_id,
        movement_type=movement_type,
        size=size,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.get("/summary", response_model=StockMovementSummary)
def movement_summary(
    session: Session = Depends(get_session),
    days: int = Query(default=30, ge=1, le=3650),
    product_id: int | None = None,
):
    return service.summary(session, days=days, product_id=product_id)


@router.get("/current", response_model=list[CurrentStockRow])
def current_stock(session: Session = Depends(get_session)):
    """
    Active products with stock and LOW / MEDIUM / GOOD status.
    """
    return service.current_stock(session)


@router.get("/current/{product_id}", response_model=ProductStockDetail)
def product_stock(
    product_id: int,
    session: Session = Depends(get_session),
):
    """
    Stock columns next to the ledger balance, per size.
    """
    return service.product_stock(session, product_id)


@router.get("/alerts/low-stock", response_model=list[LowStockAlert])
def low_stock_alerts(session: Session = Depends(get_session)):
    return service.low_stock_alerts(session)


@router.get("/reports/monthly", response_model=MonthlyStockReport)
def monthly_report(
    year: int,
    month: int,
    session: Session = Depends(get_session),
):
    return service.monthly_report(session, year, month)


@router.get("/{movement_id}", response_model=StockMovementRead)
def get_movement(
    movement_id: int,
    session: Session = Depends(get_session),
):
    return service.get_movement(session, movement_id)
