"""Tests for payment intent sizing and gateway callbacks."""

import pytest

from app.core.errors import GatewayFailureError, InvalidStateError, NotFoundError
from app.repositories.cart_repo import CartRepository
from app.schemas.cart import (
    ApplyCouponRequest,
    CartItemCreate,
    CartItemUpdate,
    SetDeliveryMethodRequest,
)
from app.schemas.order import OrderCreate


@pytest.fixture
def fill_cart(session, cart_service):
    def _fill(user, product, quantity=1):
        return cart_service.add_item(
            session, user.id, CartItemCreate(product_id=product.id, quantity=quantity)
        )

    return _fill


@pytest.fixture
def online_order(session, order_service, fill_cart, delivery, address, user, product):
    fill_cart(user, product, 3)
    payload = OrderCreate.model_validate(
        {
            "delivery_method_id": delivery.id,
            "payment_method": "online",
            "shipping_address": address,
        }
    )
    return order_service.create_order(session, user.id, user.email, payload)


class TestSyncIntentForCart:
    def test_creates_intent_for_cart_total(
        self, session, payment_service, fill_cart, gateway, user, product
    ):
        fill_cart(user, product, 2)
        intent = payment_service.sync_intent_for_cart(session, user.id)

        assert intent.amount == 20.0
        assert gateway.calls_of("create") == [intent.intent_id]
        cart = CartRepository().get_for_user(session, user.id)
        assert cart.payment_intent_id == intent.intent_id
        assert cart.client_secret == intent.client_secret

    def test_includes_discount_and_delivery(
        self,
        session,
        cart_service,
        payment_service,
        fill_cart,
        user,
        make_product,
        make_coupon,
        delivery,
    ):
        product = make_product(price=20.0)
        make_coupon(code="SAVE10", rate=10.0)
        fill_cart(user, product, 1)
        cart_service.apply_coupon(session, user.id, ApplyCouponRequest(code="SAVE10"))
        cart_service.set_delivery_method(
            session, user.id, SetDeliveryMethodRequest(delivery_method_id=delivery.id)
        )

        intent = payment_service.sync_intent_for_cart(session, user.id)
        assert intent.amount == 23.0

    def test_resizes_same_intent(
        self, session, cart_service, payment_service, fill_cart, gateway, user, product
    ):
        cart = fill_cart(user, product, 2)
        first = payment_service.sync_intent_for_cart(session, user.id)

        cart_service.update_item(
            session, user.id, cart.items[0].id, CartItemUpdate(quantity=3)
        )
        second = payment_service.sync_intent_for_cart(session, user.id)

        assert second.intent_id == first.intent_id
        assert second.amount == 30.0
        assert gateway.calls_of("update") == [first.intent_id]
        assert len(gateway.calls_of("create")) == 1

    def test_spent_intent_is_replaced(
        self, session, payment_service, fill_cart, gateway, user, product
    ):
        fill_cart(user, product, 1)
        first = payment_service.sync_intent_for_cart(session, user.id)
        gateway.set_status(first.intent_id, "succeeded")

        second = payment_service.sync_intent_for_cart(session, user.id)

        assert second.intent_id != first.intent_id
        assert gateway.calls_of("update") == []

    def test_refreshes_prices(
        self, session, payment_service, fill_cart, user, product
    ):
        fill_cart(user, product, 2)
        product.price = 11.0
        session.add(product)
        session.commit()

        intent = payment_service.sync_intent_for_cart(session, user.id)

        assert intent.amount == 22.0
        cart = CartRepository().get_for_user(session, user.id)
        items = CartRepository().list_items(session, cart.id)
        assert items[0].unit_price == 11.0

    def test_empty_cart(self, session, payment_service, user):
        with pytest.raises(InvalidStateError):
            payment_service.sync_intent_for_cart(session, user.id)

    def test_gateway_failure_leaves_cart_untouched(
        self, session, payment_service, fill_cart, gateway, user, product
    ):
        fill_cart(user, product, 1)
        gateway.fail = True

        with pytest.raises(GatewayFailureError):
            payment_service.sync_intent_for_cart(session, user.id)

        cart = CartRepository().get_for_user(session, user.id)
        assert cart.payment_intent_id is None


class TestGatewayCallback:
    def test_success_moves_to_processing(
        self, session, payment_service, online_order
    ):
        order = payment_service.handle_gateway_callback(
            session, online_order.payment_intent_id, succeeded=True
        )
        assert order.status == "processing"

    def test_success_redelivered_is_noop(
        self, session, payment_service, online_order
    ):
        payment_service.handle_gateway_callback(
            session, online_order.payment_intent_id, succeeded=True
        )
        order = payment_service.handle_gateway_callback(
            session, online_order.payment_intent_id, succeeded=True
        )
        assert order.status == "processing"

    def test_failure_cancels_and_restores_stock(
        self, session, payment_service, online_order, product
    ):
        session.refresh(product)
        assert product.stock_on_hand == 7

        order = payment_service.handle_gateway_callback(
            session, online_order.payment_intent_id, succeeded=False
        )

        assert order.status == "cancelled"
        session.refresh(product)
        assert product.stock_on_hand == 10

    def test_failure_after_success_is_invalid(
        self, session, payment_service, online_order
    ):
        payment_service.handle_gateway_callback(
            session, online_order.payment_intent_id, succeeded=True
        )
        with pytest.raises(InvalidStateError):
            payment_service.handle_gateway_callback(
                session, online_order.payment_intent_id, succeeded=False
            )

    def test_unknown_intent(self, session, payment_service):
        with pytest.raises(NotFoundError):
            payment_service.handle_gateway_callback(session, "pi_missing", True)


class TestValidatePayment:
    def test_pending_order_is_valid(
        self, session, payment_service, online_order, user
    ):
        assert payment_service.validate_order_exists_for_payment(
            session, online_order.payment_intent_id, user.id
        )

    def test_paid_order_is_not_valid(
        self, session, payment_service, online_order, user
    ):
        payment_service.handle_gateway_callback(
            session, online_order.payment_intent_id, succeeded=True
        )
        assert not payment_service.validate_order_exists_for_payment(
            session, online_order.payment_intent_id, user.id
        )

    def test_unknown_intent_is_not_valid(self, session, payment_service, user):
        assert not payment_service.validate_order_exists_for_payment(
            session, "pi_x", user.id
        )

    def test_other_users_intent_is_not_valid(
        self, session, payment_service, online_order, other_user
    ):
        assert not payment_service.validate_order_exists_for_payment(
            session, online_order.payment_intent_id, other_user.id
        )
