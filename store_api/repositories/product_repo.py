# store_api/repositories/product_repo.py
from sqlalchemy import func, or_
from sqlmodel import Session, select

from store_api.models.cart import CartItem
from store_api.models.order import OrderItem
from store_api.models.product import Product, ProductImage, ProductSize
from store_api.models.stock_movement import StockMovement


class ProductRepository:
    """
    Data access layer for Product, ProductSize & ProductImage.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: int) -> Product | None:
        return session.get(Product, product_id)

    def get_for_update(self, session: Session, product_id: int) -> Product | None:
        """
        Load a product with a row lock (SELECT ... FOR UPDATE).

        SQLite ignores the lock; Postgres honors it.
        """
        stmt = select(Product).where(Product.id == product_id).with_for_update()
        return session.exec(stmt).first()

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        stmt = select(Product).where(Product.slug == slug)
        return session.exec(stmt).first()

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
        category_id: int | None = None,
        search: str | None = None,
    ) -> list[Product]:
        stmt = select(Product)
        if only_active:
            stmt = stmt.where(Product.is_active == True)  # noqa: E712
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Product.name).like(pattern),
                    func.lower(Product.description).like(pattern),
                )
            )
        stmt = stmt.order_by(Product.name).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def list_low_stock(self, session: Session) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.is_active == True)  # noqa: E712
            .where(Product.stock <= Product.reorder_point)
            .order_by(Product.stock, Product.name)
        )
        return session.exec(stmt).all()

    def is_referenced_by_orders(self, session: Session, product_id: int) -> bool:
        stmt = select(OrderItem.id).where(OrderItem.product_id == product_id).limit(1)
        return session.exec(stmt).first() is not None

    def add(self, session: Session, product: Product) -> Product:
        """
        Insert without committing; the caller finishes the transaction.
        """
        session.add(product)
        session.flush()
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def has_stock_history(self, session: Session, product_id: int) -> bool:
        stmt = select(StockMovement.id).where(StockMovement.product_id == product_id).limit(1)
        return session.exec(stmt).first() is not None

    def delete(self, session: Session, product: Product) -> None:
        """
        Hard delete a product together with its sizes, gallery rows and
        any cart lines pointing at it.
        """
        for model in (ProductSize, ProductImage, CartItem):
            rows = session.exec(select(model).where(model.product_id == product.id)).all()
            for row in rows:
                session.delete(row)
        session.flush()
        session.delete(product)
        session.commit()

    # ----- Sizes -----

    def list_sizes(self, session: Session, product_id: int) -> list[ProductSize]:
        stmt = (
            select(ProductSize)
            .where(ProductSize.product_id == product_id)
            .order_by(ProductSize.id)
        )
        return session.exec(stmt).all()

    def get_size(
        self,
        session: Session,
        product_id: int,
        size: str,
        lock: bool = False,
    ) -> ProductSize | None:
        stmt = select(ProductSize).where(
            ProductSize.product_id == product_id,
            ProductSize.size == size,
        )
        if lock:
            stmt = stmt.with_for_update()
        return session.exec(stmt).first()

    def has_sizes(self, session: Session, product_id: int) -> bool:
        stmt = select(ProductSize.id).where(ProductSize.product_id == product_id).limit(1)
        return session.exec(stmt).first() is not None

    def add_size(self, session: Session, size: ProductSize) -> ProductSize:
        session.add(size)
        session.flush()
        return size

    # ----- Product images -----

    def list_images_for_product(
        self,
        session: Session,
        product_id: int,
    ) -> list[ProductImage]:
        stmt = (
            select(ProductImage)
            .where(ProductImage.product_id == product_id)
            .order_by(ProductImage.sort_order)
        )
        return session.exec(stmt).all()

    def get_image_by_id(
        self,
        session: Session,
        image_id: int,
    ) -> ProductImage | None:
        return session.get(ProductImage, image_id)

    def create_image(
        self,
        session: Session,
        image: ProductImage,
    ) -> ProductImage:
        session.add(image)
        session.commit()
        session.refresh(image)
        return image

    def delete_image(
        self,
        session: Session,
        image: ProductImage,
    ) -> None:
        session.delete(image)
        session.commit()
