# store_api/repositories/cart_repo.py
import uuid

from sqlmodel import Session, select

from store_api.models.cart import CartItem


class CartRepository:

    # Get items for a user
    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.id)
        )
        return session.exec(stmt).all()

    def get_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: int,
        size: str | None,
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
        )
        if size is None:
            stmt = stmt.where(CartItem.size.is_(None))
        else:
            stmt = stmt.where(CartItem.size == size)
        return session.exec(stmt).first()

    def get_by_id(self, session: Session, item_id: int) -> CartItem | None:
        return session.get(CartItem, item_id)

    # CRUD
    def save(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.commit()

    def clear_user_cart(self, session: Session, user_id: uuid.UUID, commit: bool = True) -> None:
        for row in self.list_for_user(session, user_id):
            session.delete(row)
        if commit:
            session.commit()
