# store_api/routers/cart.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from store_api.core.auth import require_user
from store_api.database import get_session
from store_api.models.user import User
from store_api.repositories.cart_repo import CartRepository
from store_api.repositories.product_repo import ProductRepository
from store_api.schemas.cart import CartSummary, CartItemCreate, CartItemUpdate
from store_api.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

service = CartService(CartRepository(), ProductRepository())


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Lines with their frozen unit price, plus totals. Students only.
    """
    return service.get_cart_summary(session, current_user.id)


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Add a product (with `size` for sized products) to the cart.

    Adding the same product and size again increases the quantity.
    """
    return service.add_to_cart(session, current_user.id, payload)


@router.patch("/{item_id}", response_model=CartSummary)
def update_cart_item(
    item_id: int,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """Set a line quantity; it must still fit current stock."""
    return service.update_quantity(session, current_user.id, item_id, payload)


@router.delete("/{item_id}", response_model=CartSummary)
def remove_cart_item(
    item_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.remove_item(session, current_user.id, item_id)


@router.delete("", response_model=CartSummary)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.clear_cart(session, current_user.id)
