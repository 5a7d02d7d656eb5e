# app/services/order_service.py
import logging
import uuid

from sqlmodel import Session

from app.core.clock import utcnow
from app.core.errors import (
    GatewayFailureError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from app.core.payment_gateway import PaymentGateway
from app.models.order import (
    OPEN_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
)
from app.repositories.cart_repo import CartRepository
from app.repositories.delivery_repo import DeliveryMethodRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderOperationResult,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
    ShippingAddress,
)
from app.services.coupon_service import CouponService
from app.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

# Allowed status changes; anything else is InvalidState.
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING.value: {OrderStatus.PROCESSING.value, OrderStatus.CANCELLED.value},
    OrderStatus.PENDING_PAYMENT.value: {
        OrderStatus.PROCESSING.value,
        OrderStatus.CANCELLED.value,
    },
    OrderStatus.PROCESSING.value: set(),
    OrderStatus.CANCELLED.value: set(),
}


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create order from cart (re-validating products, coupon and stock)
      - Reserve stock atomically with persisting the order
      - Clear the cart after success
      - Enforce the order status state machine
      - Restore stock whenever an order is cancelled or deleted
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        delivery_repo: DeliveryMethodRepository,
        coupon_service: CouponService,
        payment_service: PaymentService,
        gateway: PaymentGateway,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.delivery_repo = delivery_repo
        self.coupon_service = coupon_service
        self.payment_service = payment_service
        self.gateway = gateway

    # -------- User-facing operations --------

    def create_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        buyer_email: str,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Convert the current user's cart into an Order.

        Steps:
          1. Load cart items; error if empty.
          2. Validate delivery method.
          3. Online payment: size the cart's payment intent first; a gateway
             failure aborts before anything is reserved.
          4. Re-check every product (active, stock) and reserve stock with a
             conditional decrement; any failure rolls everything back.
          5. Re-evaluate the coupon against live prices.
          6. Compute subtotal, discount, delivery cost and total.
          7. Status: pending_payment (online) or pending (cash on delivery).
          8. Persist order + items, clear the cart, commit once.
        """
        # 1) Load cart
        cart = self.cart_repo.get_for_user(session, user_id, lock=True)
        if cart is None or not self.cart_repo.list_items(session, cart.id):
            raise InvalidStateError("Cart is empty")

        # 2) Delivery method
        delivery = self.delivery_repo.get_by_id(session, payload.delivery_method_id)
        if not delivery:
            raise NotFoundError("Delivery method not found")

        # 3) Payment intent (online only)
        online = payload.payment_method == PaymentMethod.ONLINE.value
        intent = None
        if online:
            cart.delivery_method_id = delivery.id
            self.cart_repo.save(session, cart)
            intent = self.payment_service.sync_intent_for_cart(session, user_id)
            # sync committed; take the cart lock again for the order transaction
            cart = self.cart_repo.get_for_user(session, user_id, lock=True)

        cart_items = self.cart_repo.list_items(session, cart.id)
        if not cart_items:
            raise InvalidStateError("Cart is empty")

        try:
            # 4) Re-validate products and reserve stock
            order_items: list[OrderItem] = []
            for ci in cart_items:
                product = self.product_repo.get_by_id(session, ci.product_id)
                if not product or not product.is_active:
                    raise NotFoundError(f"Product {ci.product_id} is not available")

                if not self.product_repo.reserve_stock(session, product.id, ci.quantity):
                    fresh = self.product_repo.get_fresh(session, product.id)
                    available = fresh.stock_on_hand if fresh else 0
                    raise InsufficientStockError(product.id, available, ci.quantity)

                order_items.append(
                    OrderItem(
                        product_id=product.id,
                        product_name=product.name,
                        quantity=ci.quantity,
                        unit_price=product.price,
                    )
                )

            # 5) + 6) Totals
            subtotal = round(sum(it.quantity * it.unit_price for it in order_items), 2)
            coupon_code, discount = self.coupon_service.recalculate(
                session, cart.coupon_code, subtotal
            )
            delivery_cost = delivery.cost
            total_amount = round(subtotal - discount + delivery_cost, 2)

            # 7) + 8) Persist
            address = payload.shipping_address
            order = Order(
                user_id=user_id,
                buyer_email=buyer_email,
                status=(
                    OrderStatus.PENDING_PAYMENT.value
                    if online
                    else OrderStatus.PENDING.value
                ),
                payment_method=payload.payment_method,
                delivery_method_id=delivery.id,
                subtotal=subtotal,
                discount_amount=discount,
                coupon_code=coupon_code,
                delivery_cost=delivery_cost,
                total_amount=total_amount,
                ship_first_name=address.first_name,
                ship_last_name=address.last_name,
                ship_street=address.street,
                ship_city=address.city,
                ship_country=address.country,
                payment_intent_id=intent.intent_id if intent else None,
                client_secret=intent.client_secret if intent else None,
            )
            order = self.order_repo.create_order(session, order)

            for it in order_items:
                it.order_id = order.id
            order_items = self.order_repo.create_items(session, order_items)

            self.cart_repo.clear_items(session, cart.id)
            cart.coupon_code = None
            cart.discount_amount = 0.0
            cart.delivery_method_id = None
            cart.payment_intent_id = None
            cart.client_secret = None
            cart.updated_at = utcnow()
            self.cart_repo.save(session, cart)

            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(order)
        logger.info(
            "Order %s created for user %s (%s, total %.2f)",
            order.id,
            user_id,
            order.status,
            order.total_amount,
        )
        return self._build_order_with_items_dto(order, order_items)

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        """
        List orders for the given user (without items).
        """
        orders = self.order_repo.list_for_user(session, user_id, skip, limit)
        return [OrderRead.model_validate(o) for o in orders]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get a single order for the user, including items.

        - 404 if order not found or does not belong to this user.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise NotFoundError("Order not found")

        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def cancel_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderOperationResult:
        """
        Buyer-initiated cancel, allowed only while pending / pending_payment.

        Refusal because of the current status is returned as an unsuccessful
        result rather than raised.
        """
        order = self.order_repo.get_by_id(session, order_id, lock=True)
        if not order:
            raise NotFoundError("Order not found")
        if order.user_id != user_id:
            raise UnauthorizedError("Order belongs to another user")

        if order.status not in OPEN_STATUSES:
            current = order.status
            session.rollback()
            return OrderOperationResult(
                success=False,
                message=f"Order cannot be cancelled in status '{current}'",
                order_id=order_id,
                status=current,
                error_type=InvalidStateError.error_type,
            )

        self._cancel_and_restore(session, order)
        session.commit()
        self._cancel_intent_quietly(order.payment_intent_id)

        return OrderOperationResult(
            success=True,
            message="Order cancelled and stock restored",
            order_id=order_id,
            status=OrderStatus.CANCELLED.value,
        )

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: str | None = None,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_all(session, skip, limit, status)
        return [OrderRead.model_validate(o) for o in orders]

    def get_order_admin(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found")
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderRead:
        """
        Admin-only status update with the order state machine:

          pending / pending_payment -> processing, cancelled
          processing                -> (no change)
          cancelled                 -> (no change)

        Cancelling restores stock. Any invalid transition raises InvalidState.
        """
        order = self.order_repo.get_by_id(session, order_id, lock=True)
        if not order:
            raise NotFoundError("Order not found")

        current = order.status
        new = payload.status

        if current == new:
            return OrderRead.model_validate(order)

        if new not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidStateError(f"Invalid status transition: {current} -> {new}")

        if new == OrderStatus.CANCELLED.value:
            self._cancel_and_restore(session, order)
        else:
            order.status = new
            self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)

        if new == OrderStatus.CANCELLED.value:
            self._cancel_intent_quietly(order.payment_intent_id)
        return OrderRead.model_validate(order)

    def delete_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderOperationResult:
        """
        Administrative removal: restore stock (unless a cancel already did),
        then delete the order and its items in the same transaction.
        """
        order = self.order_repo.get_by_id(session, order_id, lock=True)
        if not order:
            raise NotFoundError("Order not found")

        status = order.status
        if status != OrderStatus.CANCELLED.value:
            items = self.order_repo.list_items_for_order(session, order.id)
            self.product_repo.release_order_items(session, items)
        self.order_repo.delete_order(session, order)
        session.commit()

        return OrderOperationResult(
            success=True,
            message="Order deleted and stock restored",
            order_id=order_id,
            status=status,
        )

    # -------- Helpers --------

    def _cancel_and_restore(self, session: Session, order: Order) -> None:
        items = self.order_repo.list_items_for_order(session, order.id)
        self.product_repo.release_order_items(session, items)
        order.status = OrderStatus.CANCELLED.value
        self.order_repo.update_order(session, order)

    def _cancel_intent_quietly(self, intent_id: str | None) -> None:
        """
        Void the gateway intent of a cancelled order so it cannot be paid.
        """
        if not intent_id:
            return
        try:
            self.gateway.cancel_intent(intent_id)
        except GatewayFailureError:
            logger.warning("Could not cancel payment intent %s", intent_id)

    def _build_order_with_items_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        item_dtos = [
            OrderItemRead(
                id=it.id,
                product_id=it.product_id,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                line_total=round(it.quantity * it.unit_price, 2),
            )
            for it in items
        ]

        return OrderWithItemsRead(
            id=order.id,
            user_id=order.user_id,
            buyer_email=order.buyer_email,
            status=order.status,
            payment_method=order.payment_method,
            delivery_method_id=order.delivery_method_id,
            subtotal=order.subtotal,
            discount_amount=order.discount_amount,
            coupon_code=order.coupon_code,
            delivery_cost=order.delivery_cost,
            total_amount=order.total_amount,
            payment_intent_id=order.payment_intent_id,
            client_secret=order.client_secret,
            created_at=order.created_at,
            shipping_address=ShippingAddress(
                first_name=order.ship_first_name,
                last_name=order.ship_last_name,
                street=order.ship_street,
                city=order.ship_city,
                country=order.ship_country,
            ),
            items=item_dtos,
        )
