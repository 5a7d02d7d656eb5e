"""Tests for the Stripe adapter, run offline against stripe's own objects."""

from types import SimpleNamespace

import pytest
import stripe

from app.core.errors import GatewayFailureError
from app.core.payment_gateway import PaymentGateway, _from_stripe, to_minor_units


def stripe_intent(**overrides):
    values = {
        "id": "pi_123",
        "object": "payment_intent",
        "client_secret": "pi_123_secret_abc",
        "amount": 2599,
        "currency": "usd",
        "status": "requires_payment_method",
    }
    values.update(overrides)
    return stripe.PaymentIntent.construct_from(values, "sk_test_123")


class FakeIntentService:
    """Stands in for `StripeClient.v1.payment_intents`."""

    def __init__(self, error=None, response=None):
        self.error = error
        self.response = response
        self.calls = []

    def _answer(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error
        return self.response if self.response is not None else stripe_intent()

    def create(self, params=None):
        return self._answer("create", params=params)

    def update(self, intent_id, params=None):
        return self._answer("update", intent_id, params=params)

    def retrieve(self, intent_id):
        return self._answer("retrieve", intent_id)

    def cancel(self, intent_id):
        return self._answer("cancel", intent_id)


def gateway_with(service):
    client = SimpleNamespace(v1=SimpleNamespace(payment_intents=service))
    return PaymentGateway(api_key="sk_test_123", client=client)


class TestIntentMapping:
    def test_maps_stripe_object(self):
        info = _from_stripe(stripe_intent())
        assert info.id == "pi_123"
        assert info.client_secret == "pi_123_secret_abc"
        assert info.amount == 25.99
        assert info.currency == "usd"
        assert info.status == "requires_payment_method"

    def test_missing_client_secret_is_none(self):
        intent = stripe.PaymentIntent.construct_from(
            {
                "id": "pi_9",
                "object": "payment_intent",
                "amount": 100,
                "currency": "usd",
                "status": "canceled",
            },
            "sk_test_123",
        )
        assert _from_stripe(intent).client_secret is None

    def test_minor_units_round_to_nearest_cent(self):
        assert to_minor_units(19.99) == 1999
        assert to_minor_units(10) == 1000


class TestPaymentGateway:
    def test_create_sends_cents_and_card_only(self):
        service = FakeIntentService()
        info = gateway_with(service).create_intent(25.99, {"cart_id": "c1"})

        name, _, kwargs = service.calls[0]
        assert name == "create"
        assert kwargs["params"] == {
            "amount": 2599,
            "currency": "usd",
            "payment_method_types": ["card"],
            "metadata": {"cart_id": "c1"},
        }
        assert info.client_secret == "pi_123_secret_abc"

    def test_update_sends_new_amount(self):
        service = FakeIntentService(response=stripe_intent(amount=1000))
        info = gateway_with(service).update_intent_amount("pi_123", 10.0)

        assert service.calls[0] == ("update", ("pi_123",), {"params": {"amount": 1000}})
        assert info.amount == 10.0

    def test_cancel(self):
        service = FakeIntentService(response=stripe_intent(status="canceled"))
        gateway_with(service).cancel_intent("pi_123")
        assert service.calls[0][:2] == ("cancel", ("pi_123",))

    def test_stripe_error_becomes_gateway_failure(self):
        service = FakeIntentService(error=stripe.APIConnectionError("network down"))
        with pytest.raises(GatewayFailureError) as exc:
            gateway_with(service).get_intent("pi_123")
        assert "network down" not in exc.value.message

    def test_malformed_response_becomes_gateway_failure(self):
        incomplete = stripe.PaymentIntent.construct_from(
            {"id": "pi_1", "object": "payment_intent"}, "sk_test_123"
        )
        service = FakeIntentService(response=incomplete)
        with pytest.raises(GatewayFailureError):
            gateway_with(service).get_intent("pi_1")

    def test_without_api_key_is_not_configured(self):
        gateway = PaymentGateway(api_key=None)
        with pytest.raises(GatewayFailureError) as exc:
            gateway.create_intent(10.0)
        assert "not configured" in exc.value.message

    def test_builds_own_stripe_client(self):
        gateway = PaymentGateway(api_key="sk_test_123", timeout=3.0, max_retries=1)
        assert isinstance(gateway._client, stripe.StripeClient)
