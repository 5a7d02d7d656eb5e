# app/routers/payments.py
import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from app.core.auth import require_user
from app.core.errors import InvalidStateError, NotFoundError
from app.core.payment_gateway import construct_webhook_event
from app.database import get_session
from app.dependencies import get_payment_service
from app.models.user import User
from app.schemas.payment import PaymentIntentRead, PaymentValidationRead
from app.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

# Stripe event type -> did the payment succeed?
PAYMENT_EVENTS = {
    "payment_intent.succeeded": True,
    "payment_intent.payment_failed": False,
}


@router.post("/intent", response_model=PaymentIntentRead)
def sync_payment_intent(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: PaymentService = Depends(get_payment_service),
):
    """
    Create or resize the payment intent for the current cart total.

    Call again after changing the cart; the same intent is reused while
    it can still be updated.
    """
    return service.sync_intent_for_cart(session, current_user.id)


@router.get("/validate/{intent_id}", response_model=PaymentValidationRead)
def validate_payment(
    intent_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: PaymentService = Depends(get_payment_service),
):
    """
    Whether one of the caller's orders is waiting on this intent
    (client-side pre-confirm check).
    """
    valid = service.validate_order_exists_for_payment(
        session, intent_id, current_user.id
    )
    return PaymentValidationRead(intent_id=intent_id, valid=valid)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    session: Session = Depends(get_session),
    service: PaymentService = Depends(get_payment_service),
):
    """
    Stripe webhook receiver.

    Signature is verified before anything is read. Unknown event types,
    unknown intents and stale outcomes are acknowledged with 200 so Stripe
    stops redelivering them.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = construct_webhook_event(payload, signature)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Rejected webhook: %s", e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook payload or signature",
        )

    event_type = event["type"]
    if event_type not in PAYMENT_EVENTS:
        return {"received": True}

    intent_id = event["data"]["object"]["id"]
    try:
        order = await run_in_threadpool(
            service.handle_gateway_callback,
            session,
            intent_id,
            PAYMENT_EVENTS[event_type],
        )
    except (NotFoundError, InvalidStateError) as e:
        logger.warning("Ignored %s for intent %s: %s", event_type, intent_id, e.message)
        return {"received": True}

    return {"received": True, "order_id": str(order.id), "status": order.status}
