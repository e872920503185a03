# store_api/schemas/stock_movement.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

MovementType = Literal["stock_in", "stock_out", "stock_adjustment"]
StockStatus = Literal["LOW", "MEDIUM", "GOOD"]
AlertLevel = Literal["CRITICAL", "LOW"]


class StockMovementCreate(SQLModel):
    """
    Admin payload for recording a movement.

    - stock_in / stock_out: `quantity` (> 0) is required.
    - stock_adjustment: `physical_count` (>= 0) is required; the signed
      delta is computed from the current stock.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: int
    size: str | None = Field(default=None, max_length=20)
    movement_type: MovementType
    quantity: int | None = Field(default=None, gt=0)
    physical_count: int | None = Field(default=None, ge=0)
    reason: str = Field(max_length=100)
    supplier: str | None = Field(default=None, max_length=200)
    notes: str | None = None

    @field_validator("reason")
    @classmethod
    def reason_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason is required")
        return v

    @field_validator("size")
    @classmethod
    def normalize_size(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip().upper()
        return v or None

    @model_validator(mode="after")
    def check_amount(self):
        if self.movement_type == "stock_adjustment":
            if self.physical_count is None:
                raise ValueError("physical_count is required for stock_adjustment")
            if self.quantity is not None:
                raise ValueError("quantity is not accepted for stock_adjustment")
        else:
            if self.quantity is None:
                raise ValueError("quantity is required for stock_in/stock_out")
            if self.physical_count is not None:
                raise ValueError("physical_count is only accepted for stock_adjustment")
        return self


class StockMovementRead(SQLModel):
    id: int
    product_id: int
    product_name: str | None = None
    size: str | None = None
    movement_type: MovementType
    quantity: int
    reason: str
    supplier: str | None = None
    notes: str | None = None
    reference: str | None = None
    previous_stock: int
    new_stock: int
    performed_by: uuid.UUID | None = None
    performed_by_name: str | None = None
    created_at: datetime


class MovementTypeSummary(SQLModel):
    movement_type: MovementType
    movement_count: int
    total_quantity: int


class StockMovementSummary(SQLModel):
    days: int
    summary: list[MovementTypeSummary]
    recent_movements: list[StockMovementRead]


class CurrentStockRow(SQLModel):
    id: int
    name: str
    category_id: int | None = None
    category_name: str | None = None
    current_stock: int
    reorder_point: int
    stock_status: StockStatus
    last_updated: datetime


class SizeStockRow(SQLModel):
    size: str
    stock: int
    ledger_stock: int


class ProductStockDetail(SQLModel):
    """
    Denormalized stock next to the ledger-derived stock.
    """

    product_id: int
    name: str
    stock: int
    ledger_stock: int
    reorder_point: int
    stock_status: StockStatus
    in_sync: bool
    sizes: list[SizeStockRow]


class LowStockAlert(SQLModel):
    id: int
    name: str
    category_name: str | None = None
    current_stock: int
    reorder_point: int
    alert_level: AlertLevel


class MonthlyStockRow(SQLModel):
    product_id: int
    product_name: str
    total_in: int
    total_out: int
    net_movement: int


class MonthlyStockReport(SQLModel):
    year: int
    month: int
    rows: list[MonthlyStockRow]
