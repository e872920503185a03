# store_api/services/cart_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from store_api.models.cart import CartItem
from store_api.models.product import Product, ProductSize
from store_api.repositories.cart_repo import CartRepository
from store_api.repositories.product_repo import ProductRepository
from store_api.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartItemRead,
    CartSummary,
)


class CartService:
    """
    Student carts.

    Each line is one product and size. Quantities are capped by the
    size stock for sized products and by Product.stock otherwise. The
    unit price is frozen when the line is first added.
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # ---- internal helpers ----

    def _get_valid_product(self, session: Session, product_id: int) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        if not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Product is inactive",
            )
        return product

    def _get_variant(
        self,
        session: Session,
        product: Product,
        size: str | None,
    ) -> ProductSize | None:
        sized = self.product_repo.has_sizes(session, product.id)
        if sized and size is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Please select a size",
            )
        if not sized:
            if size is not None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="This product has no size variants",
                )
            return None

        variant = self.product_repo.get_size(session, product.id, size)
        if variant is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Size '{size}' not available",
            )
        return variant

    @staticmethod
    def _check_stock(quantity: int, available: int) -> None:
        if quantity > available:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Not enough stock available (only {available} left)",
            )

    def _get_own_item(self, session: Session, user_id: uuid.UUID, item_id: int) -> CartItem:
        item = self.cart_repo.get_by_id(session, item_id)
        if not item or item.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not found in cart",
            )
        return item

    def _resolve(
        self,
        session: Session,
        product_id: int,
        size: str | None,
    ) -> tuple[Product, ProductSize | None, int]:
        """Product, its size row (if sized) and the stock a cart line may use."""
        product = self._get_valid_product(session, product_id)
        variant = self._get_variant(session, product, size)
        available = variant.stock if variant is not None else product.stock
        return product, variant, available

    @staticmethod
    def _as_read(item: CartItem) -> CartItemRead:
        return CartItemRead(
            id=item.id,
            user_id=item.user_id,
            product_id=item.product_id,
            product_name=item.product_name,
            size=item.size,
            quantity=item.quantity,
            snapshot_price=item.snapshot_price,
            line_total=item.quantity * item.snapshot_price,
            created_at=item.created_at,
        )

    # ---- public operations ----

    def get_cart_summary(self, session: Session, user_id: uuid.UUID) -> CartSummary:
        lines = [self._as_read(it) for it in self.cart_repo.list_for_user(session, user_id)]
        return CartSummary(
            items=lines,
            total_quantity=sum(line.quantity for line in lines),
            total_price=sum(line.line_total for line in lines),
        )

    def add_to_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CartItemCreate,
    ) -> CartSummary:
        """
        Put a product (and size) in the cart.

        A second add of the same product and size bumps the existing row;
        the combined quantity is checked against stock.
        """
        product, variant, available = self._resolve(session, payload.product_id, payload.size)

        item = self.cart_repo.get_item(session, user_id, product.id, payload.size)
        if item is not None:
            self._check_stock(item.quantity + payload.quantity, available)
            item.quantity += payload.quantity
        else:
            self._check_stock(payload.quantity, available)
            price = product.price
            if variant is not None and variant.price is not None:
                price = variant.price
            item = CartItem(
                user_id=user_id,
                product_id=product.id,
                size=payload.size,
                quantity=payload.quantity,
                snapshot_price=price,
                product_name=product.name,
            )
        self.cart_repo.save(session, item)

        return self.get_cart_summary(session, user_id)

    def update_quantity(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: int,
        payload: CartItemUpdate,
    ) -> CartSummary:
        item = self._get_own_item(session, user_id, item_id)
        _, _, available = self._resolve(session, item.product_id, item.size)
        self._check_stock(payload.quantity, available)

        item.quantity = payload.quantity
        self.cart_repo.save(session, item)
        return self.get_cart_summary(session, user_id)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: int,
    ) -> CartSummary:
        self.cart_repo.delete(session, self._get_own_item(session, user_id, item_id))
        return self.get_cart_summary(session, user_id)

    def clear_cart(self, session: Session, user_id: uuid.UUID) -> CartSummary:
        self.cart_repo.clear_user_cart(session, user_id)
        return CartSummary(items=[], total_quantity=0, total_price=0.0)
