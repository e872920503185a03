# store_api/schemas/product.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class ProductSizeWrite(SQLModel):
    """
    Size variant supplied when creating a product.

    `stock` is the opening balance; it is recorded as a stock_in movement.
    """

    model_config = ConfigDict(extra="forbid")

    size: str = Field(max_length=20)
    stock: int = Field(default=0, ge=0)
    price: float | None = Field(default=None, gt=0)

    @field_validator("size")
    @classmethod
    def normalize_size(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("size cannot be empty")
        return v


class ProductSizeRead(SQLModel):
    id: int
    size: str
    stock: int
    price: float | None = None


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - slug is optional: if omitted, generated from `name`.
    - `stock` is only accepted for products without sizes; sized products
      take their opening stock from `sizes`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    slug: str | None = None
    description: str | None = None
    price: float = Field(gt=0)
    original_price: float | None = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    reorder_point: int | None = Field(default=None, ge=0)
    category_id: int | None = None
    is_active: bool = True
    sizes: list[ProductSizeWrite] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("name must have at least 2 characters")
        return v

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("slug cannot be empty if provided")
        return v

    @field_validator("sizes")
    @classmethod
    def unique_sizes(cls, v: list[ProductSizeWrite]) -> list[ProductSizeWrite]:
        names = [s.size for s in v]
        if len(names) != len(set(names)):
            raise ValueError("sizes must be unique")
        return v


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.

    Stock is intentionally absent: use stock movements.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    slug: str | None = None
    description: str | None = None
    price: float | None = Field(default=None, gt=0)
    original_price: float | None = Field(default=None, ge=0)
    reorder_point: int | None = Field(default=None, ge=0)
    category_id: int | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError("name must have at least 2 characters")
        return v

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("slug cannot be empty")
        return v


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: int
    name: str
    slug: str
    description: str | None = None
    price: float
    original_price: float | None = None
    stock: int
    reorder_point: int
    category_id: int | None = None
    is_active: bool
    hero_image_url: str | None = None
    created_at: datetime
    updated_at: datetime
    sizes: list[ProductSizeRead] = []


class ProductImageRead(SQLModel):
    """
    Read model for gallery images.
    """

    id: int
    product_id: int
    image_url: str
    sort_order: int


class ProductDeleteResult(SQLModel):
    product_id: int
    # "deleted" | "deactivated"
    action: str
    message: str
