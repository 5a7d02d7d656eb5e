"""Tests for the expired pending-payment order cleanup worker."""

import asyncio
from datetime import timedelta

import pytest
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.models.notification import Notification
from app.models.order import Order, OrderItem, OrderStatus
from app.repositories.notification_repo import NotificationRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.services.notification_service import NotificationService
from app.services.order_cleanup import EXPIRED_ORDER_MESSAGE, ExpiredOrderCleanupWorker


@pytest.fixture
def worker(engine, gateway):
    return ExpiredOrderCleanupWorker(
        session_factory=lambda: Session(engine),
        gateway=gateway,
        order_repo=OrderRepository(),
        product_repo=ProductRepository(),
        notifier=NotificationService(NotificationRepository()),
        interval=timedelta(minutes=5),
        max_age=timedelta(hours=24),
    )


@pytest.fixture
def make_order(session, user, product, gateway):
    """Insert an order as checkout leaves it: stock already taken."""

    def _make(age, status=OrderStatus.PENDING_PAYMENT.value, quantity=2):
        intent = gateway.create_intent(quantity * product.price)
        order = Order(
            user_id=user.id,
            buyer_email=user.email,
            status=status,
            payment_method="online",
            subtotal=quantity * product.price,
            total_amount=quantity * product.price,
            ship_first_name="Ada",
            ship_last_name="Lovelace",
            ship_street="1 Main St",
            ship_city="London",
            ship_country="UK",
            payment_intent_id=intent.id,
            created_at=utcnow() - age,
        )
        session.add(order)
        session.flush()
        session.add(
            OrderItem(
                order_id=order.id,
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                unit_price=product.price,
            )
        )
        product.stock_on_hand -= quantity
        session.add(product)
        session.commit()
        session.refresh(order)
        return order

    return _make


def remaining_orders(session):
    session.expire_all()
    return session.exec(select(Order)).all()


class TestRunCycle:
    def test_expired_order_is_removed(self, session, worker, make_order, product, gateway):
        order = make_order(timedelta(hours=25))
        intent_id = order.payment_intent_id

        assert worker.run_cycle() == 1

        assert remaining_orders(session) == []
        assert session.exec(select(OrderItem)).all() == []
        session.refresh(product)
        assert product.stock_on_hand == 10
        assert gateway.calls_of("cancel") == [intent_id]

    def test_buyer_is_notified(self, session, worker, make_order, user):
        make_order(timedelta(hours=25))
        worker.run_cycle()

        notes = session.exec(select(Notification)).all()
        assert len(notes) == 1
        assert notes[0].user_id == user.id
        assert notes[0].message == EXPIRED_ORDER_MESSAGE

    def test_recent_order_is_kept(self, session, worker, make_order, product):
        make_order(timedelta(hours=1))

        assert worker.run_cycle() == 0

        assert len(remaining_orders(session)) == 1
        session.refresh(product)
        assert product.stock_on_hand == 8

    def test_paid_order_is_kept(self, session, worker, make_order):
        make_order(timedelta(hours=48), status=OrderStatus.PROCESSING.value)
        assert worker.run_cycle() == 0
        assert len(remaining_orders(session)) == 1

    def test_gateway_outage_does_not_block_cleanup(
        self, session, worker, make_order, gateway
    ):
        make_order(timedelta(hours=30))
        gateway.fail = True

        assert worker.run_cycle() == 1
        assert remaining_orders(session) == []

    def test_failing_order_does_not_stop_batch(
        self, session, worker, make_order, product, monkeypatch, caplog
    ):
        stuck = make_order(timedelta(hours=30))
        make_order(timedelta(hours=26))
        release = worker.product_repo.release_order_items
        calls = []

        def release_failing_first(session, items):
            calls.append(items)
            if len(calls) == 1:
                raise RuntimeError("stock ledger unavailable")
            return release(session, items)

        monkeypatch.setattr(
            worker.product_repo, "release_order_items", release_failing_first
        )

        assert worker.run_cycle() == 1

        assert [o.id for o in remaining_orders(session)] == [stuck.id]
        session.refresh(product)
        assert product.stock_on_hand == 8
        assert "1 failed" in caplog.text

        # next cycle picks the failed order up again
        assert worker.run_cycle() == 1
        assert remaining_orders(session) == []
        session.refresh(product)
        assert product.stock_on_hand == 10

    def test_explicit_now(self, session, worker, make_order):
        make_order(timedelta(hours=1))
        assert worker.run_cycle(now=utcnow() + timedelta(days=2)) == 1

    def test_stopped_worker_skips_batch(self, session, worker, make_order):
        make_order(timedelta(hours=25))
        worker.stop()
        assert worker.run_cycle() == 0
        assert len(remaining_orders(session)) == 1


class TestRunForever:
    def test_stops_promptly(self, worker):
        async def scenario():
            task = asyncio.create_task(worker.run_forever())
            await asyncio.sleep(0.05)
            worker.stop()
            await asyncio.wait_for(task, timeout=5)

        asyncio.run(scenario())
