# app/repositories/order_repo.py
import uuid
from datetime import datetime

from sqlmodel import Session, select

from app.models.order import Order, OrderItem, OrderStatus


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; order creation/cancellation are multi-step
        transactions. The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: str | None = None,
    ) -> list[Order]:
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def get_by_id(
        self,
        session: Session,
        order_id: uuid.UUID,
        lock: bool = False,
    ) -> Order | None:
        if not lock:
            return session.get(Order, order_id)
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).first()

    def get_by_payment_intent(
        self,
        session: Session,
        payment_intent_id: str,
        lock: bool = False,
    ) -> Order | None:
        stmt = select(Order).where(Order.payment_intent_id == payment_intent_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(
                populate_existing=True
            )
        return session.exec(stmt).first()

    def list_expired_pending_payment(
        self,
        session: Session,
        cutoff: datetime,
    ) -> list[Order]:
        """
        Orders still waiting for online payment that were created before cutoff.
        """
        stmt = (
            select(Order)
            .where(
                Order.status == OrderStatus.PENDING_PAYMENT.value,
                Order.created_at < cutoff,
            )
            .order_by(Order.created_at)
        )
        return list(session.exec(stmt).all())

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        return order

    def delete_order(self, session: Session, order: Order) -> None:
        for item in self.list_items_for_order(session, order.id):
            session.delete(item)
        session.delete(order)
        session.flush()

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        return items
