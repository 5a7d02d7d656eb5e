# app/services/payment_service.py
import logging
import uuid
from dataclasses import dataclass

from sqlmodel import Session

from app.core.clock import utcnow
from app.core.errors import GatewayFailureError, InvalidStateError, NotFoundError
from app.core.payment_gateway import (
    UPDATABLE_INTENT_STATUSES,
    PaymentGateway,
    PaymentIntentInfo,
)
from app.models.cart import Cart, CartItem
from app.models.order import OPEN_STATUSES, Order, OrderStatus
from app.repositories.cart_repo import CartRepository
from app.repositories.delivery_repo import DeliveryMethodRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.payment import PaymentIntentRead
from app.services.cart_service import cart_subtotal
from app.services.coupon_service import CouponService

logger = logging.getLogger(__name__)


@dataclass
class CartTotals:
    subtotal: float
    discount: float
    delivery_cost: float

    @property
    def total(self) -> float:
        return round(self.subtotal - self.discount + self.delivery_cost, 2)


class PaymentService:
    """
    Keeps the gateway's payment intent in line with the cart and applies
    gateway outcomes to orders.

    Responsibilities:
      - size (create / resize / replace) the cart's payment intent
      - move orders out of pending_payment on gateway callbacks
      - tell the client whether an intent may still be confirmed
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        delivery_repo: DeliveryMethodRepository,
        order_repo: OrderRepository,
        coupon_service: CouponService,
        gateway: PaymentGateway,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.delivery_repo = delivery_repo
        self.order_repo = order_repo
        self.coupon_service = coupon_service
        self.gateway = gateway

    # -------- Cart side --------

    def refresh_cart_totals(
        self,
        session: Session,
        cart: Cart,
        items: list[CartItem],
    ) -> CartTotals:
        """
        Authoritative cart total:
          - unit prices re-read from the live catalog
          - coupon re-validated (cleared if it no longer applies)
          - delivery cost of the selected method added
        Changes are flushed, not committed.
        """
        for item in items:
            product = self.product_repo.get_by_id(session, item.product_id)
            if product is not None and item.unit_price != product.price:
                item.unit_price = product.price
                self.cart_repo.update_item(session, item)

        subtotal = cart_subtotal(items)
        code, discount = self.coupon_service.recalculate(
            session, cart.coupon_code, subtotal
        )
        cart.coupon_code = code
        cart.discount_amount = discount

        delivery_cost = 0.0
        if cart.delivery_method_id:
            method = self.delivery_repo.get_by_id(session, cart.delivery_method_id)
            if method:
                delivery_cost = method.cost

        return CartTotals(subtotal=subtotal, discount=discount, delivery_cost=delivery_cost)

    def _create_or_update_intent(
        self,
        cart: Cart,
        amount: float,
    ) -> PaymentIntentInfo:
        metadata = {"user_id": str(cart.user_id), "cart_id": str(cart.id)}

        if not cart.payment_intent_id:
            return self.gateway.create_intent(amount, metadata)

        try:
            current = self.gateway.get_intent(cart.payment_intent_id)
        except GatewayFailureError:
            logger.warning(
                "Lookup of intent %s failed; creating a new one", cart.payment_intent_id
            )
            return self.gateway.create_intent(amount, metadata)

        if current.status in UPDATABLE_INTENT_STATUSES:
            return self.gateway.update_intent_amount(current.id, amount)

        # succeeded intents are spent; canceled/processing ones cannot be resized
        logger.info(
            "Intent %s is %s; replacing it for cart %s",
            current.id,
            current.status,
            cart.id,
        )
        return self.gateway.create_intent(amount, metadata)

    def sync_intent_for_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> PaymentIntentRead:
        """
        Create or refresh the cart's payment intent for the current total.

        Raises:
            InvalidStateError: empty cart.
            GatewayFailureError: gateway call failed (nothing is persisted).
        """
        cart = self.cart_repo.get_or_create(session, user_id, lock=True)
        items = self.cart_repo.list_items(session, cart.id)
        if not items:
            raise InvalidStateError("Cart is empty")

        totals = self.refresh_cart_totals(session, cart, items)
        try:
            intent = self._create_or_update_intent(cart, totals.total)
        except GatewayFailureError:
            session.rollback()
            raise

        cart.payment_intent_id = intent.id
        cart.client_secret = intent.client_secret
        cart.updated_at = utcnow()
        self.cart_repo.save(session, cart)
        session.commit()

        return PaymentIntentRead(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            amount=intent.amount,
            currency=intent.currency,
            status=intent.status,
        )

    # -------- Order side --------

    def handle_gateway_callback(
        self,
        session: Session,
        intent_id: str,
        succeeded: bool,
    ) -> Order:
        """
        Apply the gateway's verdict to the order paid by `intent_id`.

          succeeded -> processing
          failed    -> cancelled (reserved stock restored)

        Redelivery of the same outcome is a no-op.

        Raises:
            NotFoundError: no order for this intent.
            InvalidStateError: order already left the open states the other way.
        """
        order = self.order_repo.get_by_payment_intent(session, intent_id, lock=True)
        if not order:
            raise NotFoundError(f"Order not found for payment intent: {intent_id}")

        target = OrderStatus.PROCESSING if succeeded else OrderStatus.CANCELLED
        if order.status == target.value:
            session.rollback()
            return order

        if order.status not in OPEN_STATUSES:
            raise InvalidStateError(
                f"Order {order.id} is '{order.status}'; cannot move to '{target.value}'"
            )

        if not succeeded:
            items = self.order_repo.list_items_for_order(session, order.id)
            self.product_repo.release_order_items(session, items)

        order.status = target.value
        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)

        logger.info("Order %s -> %s (intent %s)", order.id, order.status, intent_id)
        return order

    def validate_order_exists_for_payment(
        self,
        session: Session,
        intent_id: str,
        user_id: uuid.UUID,
    ) -> bool:
        """
        True only if the caller owns an order for this intent and it still
        awaits payment. Someone else's intent reads as not valid.
        """
        order = self.order_repo.get_by_payment_intent(session, intent_id)
        return (
            order is not None
            and order.user_id == user_id
            and order.status == OrderStatus.PENDING_PAYMENT.value
        )
