# store_api/repositories/stock_movement_repo.py
from datetime import datetime

from sqlalchemy import case, func
from sqlmodel import Session, select

from store_api.models.product import Product
from store_api.models.stock_movement import StockMovement
from store_api.models.user import User


class StockMovementRepository:
    """
    Data access layer for the append-only stock ledger.

    Rows are inserted and read, never updated or deleted.
    """

    def add(self, session: Session, movement: StockMovement) -> StockMovement:
        session.add(movement)
        session.flush()
        return movement

    def _joined(self):
        return (
            select(StockMovement, Product.name, User.name)
            .join(Product, Product.id == StockMovement.product_id, isouter=True)
            .join(User, User.id == StockMovement.performed_by, isouter=True)
        )

    def get_with_names(
        self,
        session: Session,
        movement_id: int,
    ) -> tuple[StockMovement, str | None, str | None] | None:
        stmt = self._joined().where(StockMovement.id == movement_id)
        return session.exec(stmt).first()

    def list_with_names(
        self,
        session: Session,
        product_id: int | None = None,
        movement_type: str | None = None,
        size: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[tuple[StockMovement, str | None, str | None]]:
        stmt = self._joined()
        if product_id is not None:
            stmt = stmt.where(StockMovement.product_id == product_id)
        if movement_type is not None:
            stmt = stmt.where(StockMovement.movement_type == movement_type)
        if size is not None:
            stmt = stmt.where(StockMovement.size == size)
        if start_date is not None:
            stmt = stmt.where(StockMovement.created_at >= start_date)
        if end_date is not None:
            stmt = stmt.where(StockMovement.created_at <= end_date)
        stmt = (
            stmt.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def summary_by_type(
        self,
        session: Session,
        since: datetime,
        product_id: int | None = None,
    ) -> list[tuple[str, int, int]]:
        """
        (movement_type, movement_count, total_abs_quantity) since a cutoff.
        """
        stmt = select(
            StockMovement.movement_type,
            func.count(StockMovement.id),
            func.coalesce(func.sum(func.abs(StockMovement.quantity)), 0),
        ).where(StockMovement.created_at >= since)
        if product_id is not None:
            stmt = stmt.where(StockMovement.product_id == product_id)
        stmt = stmt.group_by(StockMovement.movement_type).order_by(StockMovement.movement_type)
        return list(session.exec(stmt).all())

    def ledger_balance(
        self,
        session: Session,
        product_id: int,
        size: str | None = None,
        by_size: bool = False,
    ) -> int:
        """
        Sum of signed deltas for a product, or for one size when by_size.
        """
        stmt = select(func.coalesce(func.sum(StockMovement.quantity), 0)).where(
            StockMovement.product_id == product_id
        )
        if by_size:
            stmt = stmt.where(StockMovement.size == size)
        return int(session.exec(stmt).one() or 0)

    def last_movement_at(self, session: Session) -> dict[int, datetime]:
        stmt = select(
            StockMovement.product_id,
            func.max(StockMovement.created_at),
        ).group_by(StockMovement.product_id)
        return {pid: ts for pid, ts in session.exec(stmt).all()}

    def monthly_totals(
        self,
        session: Session,
        start: datetime,
        end: datetime,
    ) -> list[tuple[int, str, int, int]]:
        """
        Per product: (product_id, name, total_in, total_out) within [start, end).

        Adjustments count towards in/out by the sign of their delta.
        """
        total_in = func.coalesce(
            func.sum(case((StockMovement.quantity > 0, StockMovement.quantity), else_=0)),
            0,
        )
        total_out = func.coalesce(
            func.sum(case((StockMovement.quantity < 0, -StockMovement.quantity), else_=0)),
            0,
        )
        stmt = (
            select(Product.id, Product.name, total_in, total_out)
            .join(StockMovement, StockMovement.product_id == Product.id)
            .where(
                StockMovement.created_at >= start,
                StockMovement.created_at < end,
            )
            .group_by(Product.id, Product.name)
            .order_by(Product.name)
        )
        return list(session.exec(stmt).all())
