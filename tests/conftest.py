"""Pytest fixtures for the marketplace backend tests."""

import os
import uuid
from dataclasses import replace

# Settings are read at import time; point them at throwaway values first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.setdefault("ORDER_CLEANUP_ENABLED", "false")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.errors import GatewayFailureError
from app.core.payment_gateway import PaymentIntentInfo
from app.dependencies import (
    build_order_service,
    build_payment_service,
    cart_service as shared_cart_service,
    delivery_service as shared_delivery_service,
)
from app.models.coupon import Coupon
from app.models.delivery import DeliveryMethod
from app.models.product import Product
from app.models.user import User

# Register every table on the metadata
from app.models import cart as _cart_models  # noqa: F401
from app.models import notification as _notification_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401


class FakePaymentGateway:
    """
    In-memory stand-in for the Stripe adapter.

    Records every call; set `fail = True` to make the next calls raise.
    """

    currency = "usd"

    def __init__(self):
        self.intents: dict[str, PaymentIntentInfo] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail = False

    def _check(self):
        if self.fail:
            raise GatewayFailureError("simulated outage")

    def create_intent(self, amount, metadata=None):
        self._check()
        intent_id = f"pi_{uuid.uuid4().hex[:12]}"
        intent = PaymentIntentInfo(
            id=intent_id,
            client_secret=f"{intent_id}_secret",
            amount=round(amount, 2),
            currency=self.currency,
            status="requires_payment_method",
        )
        self.intents[intent_id] = intent
        self.calls.append(("create", intent_id))
        return intent

    def update_intent_amount(self, intent_id, amount):
        self._check()
        intent = replace(self.intents[intent_id], amount=round(amount, 2))
        self.intents[intent_id] = intent
        self.calls.append(("update", intent_id))
        return intent

    def get_intent(self, intent_id):
        self._check()
        self.calls.append(("get", intent_id))
        return self.intents[intent_id]

    def cancel_intent(self, intent_id):
        self._check()
        self.calls.append(("cancel", intent_id))
        if intent_id in self.intents:
            self.intents[intent_id] = replace(self.intents[intent_id], status="canceled")

    def set_status(self, intent_id, status):
        self.intents[intent_id] = replace(self.intents[intent_id], status=status)

    def calls_of(self, kind):
        return [intent_id for k, intent_id in self.calls if k == kind]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def cart_service():
    return shared_cart_service


@pytest.fixture
def payment_service(gateway):
    return build_payment_service(gateway)


@pytest.fixture
def order_service(gateway):
    return build_order_service(gateway)


@pytest.fixture
def delivery_service():
    return shared_delivery_service


def _add(session, obj):
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


@pytest.fixture
def user(session):
    return _add(
        session,
        User(id=uuid.uuid4(), email="buyer@example.com", name="buyer", role="user"),
    )


@pytest.fixture
def other_user(session):
    return _add(
        session,
        User(id=uuid.uuid4(), email="other@example.com", name="other", role="user"),
    )


@pytest.fixture
def make_product(session):
    def _make(name="Dog food", price=10.0, stock=10, is_active=True):
        return _add(
            session,
            Product(name=name, price=price, stock_on_hand=stock, is_active=is_active),
        )

    return _make


@pytest.fixture
def product(make_product):
    return make_product()


@pytest.fixture
def delivery(session):
    return _add(
        session,
        DeliveryMethod(short_name="Standard", delivery_time="3-5 days", cost=5.0),
    )


@pytest.fixture
def free_delivery(session):
    return _add(session, DeliveryMethod(short_name="Pickup", cost=0.0))


@pytest.fixture
def make_coupon(session):
    def _make(
        code="SAVE10",
        rate=10.0,
        is_percentage=True,
        is_active=True,
        expires_at=None,
        min_order_amount=0.0,
    ):
        return _add(
            session,
            Coupon(
                name=code,
                code=code,
                rate=rate,
                is_percentage=is_percentage,
                is_active=is_active,
                expires_at=expires_at,
                min_order_amount=min_order_amount,
            ),
        )

    return _make


@pytest.fixture
def address():
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "street": "1 Main St",
        "city": "London",
        "country": "UK",
    }
