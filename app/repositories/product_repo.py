# app/repositories/product_repo.py
import uuid

from sqlalchemy import case, update
from sqlmodel import Session

from app.models.order import OrderItem
from app.models.product import Product


class ProductRepository:
    """
    Product lookups + the inventory ledger.

    Stock changes are single conditional UPDATE statements so two
    concurrent checkouts can never both take the last unit. Nothing here
    commits; the caller's transaction decides.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_fresh(self, session: Session, product_id: uuid.UUID) -> Product | None:
        """
        Re-read a product from the database, bypassing the identity map.
        """
        return session.get(Product, product_id, populate_existing=True)

    # ----- Inventory ledger -----

    def reserve_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Decrement stock only if at least `quantity` units are available.

        Returns False (and changes nothing) when stock is insufficient.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock_on_hand >= quantity)
            .values(stock_on_hand=Product.stock_on_hand - quantity)
            .execution_options(synchronize_session=False)
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        return result.rowcount == 1

    def release_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> None:
        """Give reserved units back (cancel / expire / admin delete)."""
        self.adjust_stock(session, product_id, quantity)

    def adjust_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        delta: int,
    ) -> None:
        """
        Atomically add `delta` (may be negative) with a floor at 0.
        """
        new_value = Product.stock_on_hand + delta
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock_on_hand=case((new_value < 0, 0), else_=new_value))
            .execution_options(synchronize_session=False)
        )
        session.exec(stmt)  # type: ignore[call-overload]

    def release_order_items(self, session: Session, items: list[OrderItem]) -> None:
        """Return every order line's quantity to stock."""
        for item in items:
            self.release_stock(session, item.product_id, item.quantity)
