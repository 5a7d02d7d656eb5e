# app/core/payment_gateway.py
"""
Stripe adapter for payment intents.

The rest of the backend only talks to `PaymentGateway`; it never imports
stripe directly. Every Stripe error (including network timeouts) and every
malformed response is converted into GatewayFailureError so services can
abort cleanly.
"""
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import stripe

from app.core.config import get_settings
from app.core.errors import GatewayFailureError

logger = logging.getLogger(__name__)

# Statuses in which an existing intent can still be resized in place.
UPDATABLE_INTENT_STATUSES = frozenset(
    {
        "requires_payment_method",
        "requires_confirmation",
        "requires_action",
    }
)


@dataclass(frozen=True)
class PaymentIntentInfo:
    id: str
    client_secret: str | None
    amount: float
    currency: str
    status: str


def to_minor_units(amount: float) -> int:
    """Round to the nearest cent to avoid float truncation."""
    return int(round(amount * 100))


def _from_stripe(intent: stripe.PaymentIntent) -> PaymentIntentInfo:
    # StripeObject supports item and attribute access, not dict.get.
    return PaymentIntentInfo(
        id=intent["id"],
        client_secret=getattr(intent, "client_secret", None),
        amount=intent["amount"] / 100,
        currency=intent["currency"],
        status=intent["status"],
    )


class PaymentGateway:
    """
    Thin wrapper over the Stripe PaymentIntent API.

    - Own StripeClient per gateway; no module-level stripe globals are touched.
    - Bounded network timeout (PAYMENT_GATEWAY_TIMEOUT_SECONDS).
    - No local locking; Stripe serializes operations on a given intent.
    """

    def __init__(
        self,
        api_key: str | None,
        currency: str = "usd",
        timeout: float = 10.0,
        max_retries: int = 0,
        client: Any = None,
    ):
        self.currency = currency
        if client is None and api_key:
            client = stripe.StripeClient(
                api_key,
                http_client=stripe.RequestsClient(timeout=timeout),
                max_network_retries=max_retries,
            )
        self._client = client

    def _call(self, action: str, fn) -> PaymentIntentInfo:
        if self._client is None:
            raise GatewayFailureError("Payment gateway is not configured")
        try:
            return _from_stripe(fn())
        except stripe.StripeError as e:
            logger.error("Stripe %s failed: %s", action, e)
            raise GatewayFailureError() from e
        except (KeyError, AttributeError, TypeError) as e:
            logger.exception("Unexpected Stripe response on %s", action)
            raise GatewayFailureError() from e

    @property
    def _intents(self):
        return self._client.v1.payment_intents

    def create_intent(
        self,
        amount: float,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntentInfo:
        params = {
            "amount": to_minor_units(amount),
            "currency": self.currency,
            "payment_method_types": ["card"],
            "metadata": metadata or {},
        }
        return self._call("create", lambda: self._intents.create(params=params))

    def update_intent_amount(self, intent_id: str, amount: float) -> PaymentIntentInfo:
        params = {"amount": to_minor_units(amount)}
        return self._call(
            "update", lambda: self._intents.update(intent_id, params=params)
        )

    def get_intent(self, intent_id: str) -> PaymentIntentInfo:
        return self._call("retrieve", lambda: self._intents.retrieve(intent_id))

    def cancel_intent(self, intent_id: str) -> None:
        self._call("cancel", lambda: self._intents.cancel(intent_id))


def construct_webhook_event(payload: bytes, signature: str | None) -> stripe.Event:
    """
    Verify a Stripe webhook signature and return the event.

    Raises:
        ValueError: invalid payload or missing webhook secret.
        stripe.SignatureVerificationError: bad signature.
    """
    secret = get_settings().STRIPE_WEBHOOK_SECRET
    if not secret:
        raise ValueError("STRIPE_WEBHOOK_SECRET is not configured")
    return stripe.Webhook.construct_event(payload, signature or "", secret)


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    """
    FastAPI dependency returning the process-wide gateway adapter.
    """
    settings = get_settings()
    return PaymentGateway(
        api_key=settings.STRIPE_SECRET_KEY,
        currency=settings.PAYMENT_CURRENCY,
        timeout=settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
        max_retries=settings.PAYMENT_GATEWAY_MAX_RETRIES,
    )
