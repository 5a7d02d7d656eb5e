# app/repositories/delivery_repo.py
import uuid

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.models.cart import Cart
from app.models.delivery import DeliveryMethod
from app.models.order import Order


class DeliveryMethodRepository:

    def get_by_id(
        self, session: Session, delivery_method_id: uuid.UUID
    ) -> DeliveryMethod | None:
        return session.get(DeliveryMethod, delivery_method_id)

    def list_all(self, session: Session) -> list[DeliveryMethod]:
        stmt = select(DeliveryMethod).order_by(DeliveryMethod.cost)
        return list(session.exec(stmt).all())

    def create(self, session: Session, method: DeliveryMethod) -> DeliveryMethod:
        session.add(method)
        session.commit()
        session.refresh(method)
        return method

    def update(self, session: Session, method: DeliveryMethod) -> DeliveryMethod:
        session.add(method)
        session.commit()
        session.refresh(method)
        return method

    def delete(self, session: Session, method: DeliveryMethod) -> None:
        # carts still pointing at it fall back to "no method chosen"
        stmt = (
            update(Cart)
            .where(Cart.delivery_method_id == method.id)
            .values(delivery_method_id=None)
        )
        session.exec(stmt)  # type: ignore[call-overload]
        session.delete(method)
        session.commit()

    def count_orders_using(
        self, session: Session, delivery_method_id: uuid.UUID
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Order)
            .where(Order.delivery_method_id == delivery_method_id)
        )
        return session.exec(stmt).one()
