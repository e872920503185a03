# store_api/models/product.py
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    `stock` is the denormalized on-hand quantity. It is only ever changed
    together with a StockMovement row. For products with size variants it
    is the sum of the size stocks.
    """

    __tablename__ = "products"

    id: int | None = Field(default=None, primary_key=True)

    name: str = Field(
        max_length=100,
        min_length=2,
        index=True,
        description="Display name of the product",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    description: str | None = Field(
        default=None,
        description="Optional long description",
    )

    price: float = Field(
        gt=0,
        description="Selling price (PHP)",
    )

    original_price: float | None = Field(
        default=None,
        ge=0,
        description="Cost price, used for margin reports",
    )

    stock: int = Field(
        default=0,
        ge=0,
        description="Units currently in stock (all sizes)",
    )

    reorder_point: int = Field(
        default=5,
        ge=0,
        description="Low-stock alert threshold",
    )

    category_id: int | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible in the store",
    )

    hero_image_url: str | None = Field(
        default=None,
        description="Main image URL",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class ProductSize(SQLModel, table=True):
    """
    Size variant of a product (e.g. uniform sizes S/M/L/XL).
    """

    __tablename__ = "product_sizes"
    __table_args__ = (UniqueConstraint("product_id", "size"),)

    id: int | None = Field(default=None, primary_key=True)

    product_id: int = Field(
        foreign_key="products.id",
        index=True,
    )

    size: str = Field(max_length=20)

    stock: int = Field(default=0, ge=0)

    # Optional per-size price; falls back to Product.price
    price: float | None = Field(default=None, gt=0)


class ProductImage(SQLModel, table=True):
    """
    Additional gallery images for a product.
    """

    __tablename__ = "product_images"

    id: int | None = Field(default=None, primary_key=True)

    product_id: int = Field(
        foreign_key="products.id",
        index=True,
        description="FK to products.id",
    )

    image_url: str = Field(
        description="Public URL stored in Supabase Storage",
    )

    sort_order: int = Field(
        default=0,
        ge=0,
        description="Ordering index within the gallery",
    )
