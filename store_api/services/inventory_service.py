# store_api/services/inventory_service.py
"""
Inventory ledger.

Rules:
  - Every stock change is a StockMovement row written in the same
    transaction as the denormalized Product.stock / ProductSize.stock update.
  - previous_stock / new_stock are measured at the level the movement
    targets (the size row for sized products, else the product).
  - Stock never goes below zero; stock_out that would do so is refused.
  - Products with size variants keep Product.stock == sum(size stocks).
"""
import logging
import uuid
from datetime import MAXYEAR, MINYEAR, datetime, timedelta, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from store_api.core.realtime import ADMIN_ROOM
from store_api.models.category import Category
from store_api.models.product import Product, ProductSize
from store_api.models.stock_movement import StockMovement
from store_api.repositories.product_repo import ProductRepository
from store_api.repositories.stock_movement_repo import StockMovementRepository
from store_api.schemas.stock_movement import (
    CurrentStockRow,
    LowStockAlert,
    MonthlyStockReport,
    MonthlyStockRow,
    MovementTypeSummary,
    ProductStockDetail,
    SizeStockRow,
    StockMovementCreate,
    StockMovementRead,
    StockMovementSummary,
)
from store_api.services.notification_service import NotificationService, queue_event

logger = logging.getLogger(__name__)

STOCK_IN = "stock_in"
STOCK_OUT = "stock_out"
STOCK_ADJUSTMENT = "stock_adjustment"


def stock_status(stock: int, reorder_point: int) -> str:
    if stock <= reorder_point:
        return "LOW"
    if stock <= reorder_point * 2:
        return "MEDIUM"
    return "GOOD"


def _to_read(
    movement: StockMovement,
    product_name: str | None = None,
    performed_by_name: str | None = None,
) -> StockMovementRead:
    return StockMovementRead(
        **movement.model_dump(),
        product_name=product_name,
        performed_by_name=performed_by_name,
    )


class InventoryService:
    """
    Stock movements, current-stock views and low-stock alerting.
    """

    def __init__(
        self,
        product_repo: ProductRepository,
        movement_repo: StockMovementRepository,
        notifications: NotificationService,
    ):
        self.product_repo = product_repo
        self.movement_repo = movement_repo
        self.notifications = notifications

    # -------- Core ledger write (no commit) --------

    def _resolve_size(
        self,
        session: Session,
        product: Product,
        size: str | None,
    ) -> ProductSize | None:
        sized = self.product_repo.has_sizes(session, product.id)
        if sized and size is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Size is required for {product.name}",
            )
        if not sized and size is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{product.name} has no size variants",
            )
        if size is None:
            return None

        size_row = self.product_repo.get_size(session, product.id, size, lock=True)
        if size_row is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Size '{size}' not found for {product.name}",
            )
        return size_row

    def current_level(self, session: Session, product: Product, size: str | None) -> int:
        size_row = self._resolve_size(session, product, size)
        return size_row.stock if size_row is not None else product.stock

    def apply_movement(
        self,
        session: Session,
        *,
        product: Product,
        size: str | None,
        movement_type: str,
        delta: int,
        reason: str,
        performed_by: uuid.UUID | None,
        supplier: str | None = None,
        notes: str | None = None,
        reference: str | None = None,
    ) -> StockMovement:
        """
        Apply a signed stock delta and append the ledger row.

        The caller must hold the product row (ideally loaded with
        get_for_update) and is responsible for committing.

        Raises:
            HTTPException(400): insufficient stock / size mismatch.
            HTTPException(404): unknown size.
        """
        size_row = self._resolve_size(session, product, size)
        previous = size_row.stock if size_row is not None else product.stock
        new = previous + delta

        if new < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Insufficient stock. Current stock: {previous}, "
                    f"requested: {-delta}"
                ),
            )

        now = datetime.now(timezone.utc)
        if size_row is not None:
            size_row.stock = new
            session.add(size_row)
        product.stock += delta
        product.updated_at = now
        session.add(product)

        movement = self.movement_repo.add(
            session,
            StockMovement(
                product_id=product.id,
                size=size_row.size if size_row is not None else None,
                movement_type=movement_type,
                quantity=delta,
                reason=reason,
                supplier=supplier,
                notes=notes,
                reference=reference,
                previous_stock=previous,
                new_stock=new,
                performed_by=performed_by,
                created_at=now,
            ),
        )

        logger.info(
            "Stock %s product=%s size=%s delta=%+d %s->%s ref=%s",
            movement_type,
            product.id,
            movement.size,
            delta,
            previous,
            new,
            reference,
        )

        queue_event(
            session,
            ADMIN_ROOM,
            "inventory-updated",
            {
                "product_id": product.id,
                "size": movement.size,
                "movement_type": movement_type,
                "quantity": delta,
                "new_stock": new,
                "product_stock": product.stock,
            },
        )

        if delta < 0 and product.stock <= product.reorder_point:
            self.notifications.low_stock(session, product, product.stock)

        return movement

    # -------- Admin operations --------

    def _get_product_locked(self, session: Session, product_id: int) -> Product:
        product = self.product_repo.get_for_update(session, product_id)
        if not product or not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def record_movement(
        self,
        session: Session,
        payload: StockMovementCreate,
        performed_by: uuid.UUID,
    ) -> StockMovementRead:
        """
        Record a manual stock_in / stock_out / stock_adjustment.
        """
        product = self._get_product_locked(session, payload.product_id)

        if payload.movement_type == STOCK_IN:
            delta = payload.quantity
        elif payload.movement_type == STOCK_OUT:
            delta = -payload.quantity
        else:
            current = self.current_level(session, product, payload.size)
            delta = payload.physical_count - current
            if delta == 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Physical count matches current stock; nothing to adjust",
                )

        movement = self.apply_movement(
            session,
            product=product,
            size=payload.size,
            movement_type=payload.movement_type,
            delta=delta,
            reason=payload.reason,
            performed_by=performed_by,
            supplier=payload.supplier,
            notes=payload.notes,
        )
        session.commit()
        session.refresh(movement)
        return self.get_movement(session, movement.id)

    def list_movements(
        self,
        session: Session,
        product_id: int | None = None,
        movement_type: str | None = None,
        size: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[StockMovementRead]:
        rows = self.movement_repo.list_with_names(
            session,
            product_id=product_id,
            movement_type=movement_type,
            size=size.strip().upper() if size else None,
            start_date=start_date,
            end_date=end_date,
            skip=skip,
            limit=limit,
        )
        return [_to_read(m, pname, uname) for m, pname, uname in rows]

    def get_movement(self, session: Session, movement_id: int) -> StockMovementRead:
        row = self.movement_repo.get_with_names(session, movement_id)
        if row is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Stock movement not found",
            )
        movement, pname, uname = row
        return _to_read(movement, pname, uname)

    def summary(
        self,
        session: Session,
        days: int = 30,
        product_id: int | None = None,
    ) -> StockMovementSummary:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        rows = self.movement_repo.summary_by_type(session, since, product_id)
        recent = self.movement_repo.list_with_names(
            session, product_id=product_id, start_date=since, limit=10
        )
        return StockMovementSummary(
            days=days,
            summary=[
                MovementTypeSummary(
                    movement_type=mtype,
                    movement_count=int(count or 0),
                    total_quantity=int(total or 0),
                )
                for mtype, count, total in rows
            ],
            recent_movements=[_to_read(m, p, u) for m, p, u in recent],
        )

    # -------- Stock views --------

    def current_stock(self, session: Session) -> list[CurrentStockRow]:
        products = self.product_repo.list_products(session, skip=0, limit=10_000)
        last_moved = self.movement_repo.last_movement_at(session)
        categories: dict[int, Category] = {}
        rows: list[CurrentStockRow] = []
        for p in products:
            category = None
            if p.category_id is not None:
                if p.category_id not in categories:
                    categories[p.category_id] = session.get(Category, p.category_id)
                category = categories[p.category_id]
            rows.append(
                CurrentStockRow(
                    id=p.id,
                    name=p.name,
                    category_id=p.category_id,
                    category_name=category.name if category else None,
                    current_stock=p.stock,
                    reorder_point=p.reorder_point,
                    stock_status=stock_status(p.stock, p.reorder_point),
                    last_updated=last_moved.get(p.id, p.updated_at),
                )
            )
        return rows

    def product_stock(self, session: Session, product_id: int) -> ProductStockDetail:
        """
        Denormalized stock next to the sum of the ledger, per product and size.
        """
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )

        ledger_total = self.movement_repo.ledger_balance(session, product.id)
        sizes = [
            SizeStockRow(
                size=s.size,
                stock=s.stock,
                ledger_stock=self.movement_repo.ledger_balance(
                    session, product.id, s.size, by_size=True
                ),
            )
            for s in self.product_repo.list_sizes(session, product.id)
        ]
        in_sync = ledger_total == product.stock and all(
            s.stock == s.ledger_stock for s in sizes
        )
        if not in_sync:
            logger.warning(
                "Stock drift on product %s: column=%s ledger=%s",
                product.id,
                product.stock,
                ledger_total,
            )

        return ProductStockDetail(
            product_id=product.id,
            name=product.name,
            stock=product.stock,
            ledger_stock=ledger_total,
            reorder_point=product.reorder_point,
            stock_status=stock_status(product.stock, product.reorder_point),
            in_sync=in_sync,
            sizes=sizes,
        )

    def low_stock_alerts(self, session: Session) -> list[LowStockAlert]:
        alerts: list[LowStockAlert] = []
        for p in self.product_repo.list_low_stock(session):
            category = session.get(Category, p.category_id) if p.category_id else None
            alerts.append(
                LowStockAlert(
                    id=p.id,
                    name=p.name,
                    category_name=category.name if category else None,
                    current_stock=p.stock,
                    reorder_point=p.reorder_point,
                    alert_level="CRITICAL" if p.stock == 0 else "LOW",
                )
            )
        return alerts

    def monthly_report(self, session: Session, year: int, month: int) -> MonthlyStockReport:
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
        rows = self.movement_repo.monthly_totals(session, start, end)
        return MonthlyStockReport(
            year=year,
            month=month,
            rows=[
                MonthlyStockRow(
                    product_id=pid,
                    product_name=name,
                    total_in=int(t_in or 0),
                    total_out=int(t_out or 0),
                    net_movement=int(t_in or 0) - int(t_out or 0),
                )
                for pid, name, t_in, t_out in rows
            ],
        )
