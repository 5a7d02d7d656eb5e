# app/repositories/cart_repo.py
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models.cart import Cart, CartItem


class CartRepository:
    """
    Data access for carts and cart_items.

    NOTE:
      - Only cart creation commits (it is its own tiny transaction so two
        first requests cannot create two carts). Everything else is flushed
        and committed by the service.
    """

    # ---- Carts ----

    def get_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        lock: bool = False,
    ) -> Cart | None:
        stmt = select(Cart).where(Cart.user_id == user_id)
        if lock:
            # Serializes concurrent mutations of the same cart (Postgres).
            stmt = stmt.with_for_update().execution_options(
                populate_existing=True
            )
        return session.exec(stmt).first()

    def get_or_create(
        self,
        session: Session,
        user_id: uuid.UUID,
        lock: bool = False,
    ) -> Cart:
        cart = self.get_for_user(session, user_id, lock=lock)
        if cart is not None:
            return cart

        cart = Cart(user_id=user_id)
        session.add(cart)
        try:
            session.commit()
        except IntegrityError:
            # Another request created it first (unique user_id).
            session.rollback()
        cart = self.get_for_user(session, user_id, lock=lock)
        if cart is None:
            raise RuntimeError(f"Cart for user {user_id} could not be created")
        return cart

    def save(self, session: Session, cart: Cart) -> Cart:
        session.add(cart)
        session.flush()
        return cart

    # ---- Items ----

    def list_items(self, session: Session, cart_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at)
        )
        return list(session.exec(stmt).all())

    def get_item(self, session: Session, item_id: uuid.UUID) -> CartItem | None:
        return session.get(CartItem, item_id)

    def add_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def update_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def delete_item(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()

    def clear_items(self, session: Session, cart_id: uuid.UUID) -> None:
        for row in self.list_items(session, cart_id):
            session.delete(row)
        session.flush()
