# app/services/cart_service.py
import uuid

from sqlmodel import Session

from app.core.clock import utcnow
from app.core.errors import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from app.models.cart import Cart, CartItem
from app.models.product import Product
from app.repositories.cart_repo import CartRepository
from app.repositories.delivery_repo import DeliveryMethodRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    ApplyCouponRequest,
    CartItemCreate,
    CartItemRead,
    CartItemUpdate,
    CartRead,
    SetDeliveryMethodRequest,
)
from app.services.coupon_service import CouponService


def cart_subtotal(items: list[CartItem]) -> float:
    return round(sum(it.quantity * it.unit_price for it in items), 2)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - lazily create the user's single cart
      - validate product existence and active flag
      - soft-check quantity <= stock_on_hand (checkout enforces it for real)
      - capture unit_price from Product.price on add/update
      - keep an applied coupon's discount in sync with the items

    Every mutation locks the cart row, so racing requests (two tabs)
    recompute the discount over a consistent item set.
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        delivery_repo: DeliveryMethodRepository,
        coupon_service: CouponService,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.delivery_repo = delivery_repo
        self.coupon_service = coupon_service

    # ---- internal helpers ----

    def _get_valid_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found or inactive")
        return product

    def _get_owned_item(
        self,
        session: Session,
        cart: Cart,
        item_id: uuid.UUID,
    ) -> CartItem:
        item = self.cart_repo.get_item(session, item_id)
        if not item:
            raise NotFoundError("Cart item not found")
        if item.cart_id != cart.id:
            raise UnauthorizedError("Cart item belongs to another user")
        return item

    def _recalculate_discount(
        self,
        session: Session,
        cart: Cart,
        items: list[CartItem],
    ) -> None:
        """
        Re-evaluate an applied coupon; clear it silently if it no longer applies.
        """
        if not cart.coupon_code:
            cart.discount_amount = 0.0
            return
        code, discount = self.coupon_service.recalculate(
            session, cart.coupon_code, cart_subtotal(items)
        )
        cart.coupon_code = code
        cart.discount_amount = discount

    def _commit_mutation(self, session: Session, cart: Cart) -> CartRead:
        items = self.cart_repo.list_items(session, cart.id)
        self._recalculate_discount(session, cart, items)
        cart.updated_at = utcnow()
        self.cart_repo.save(session, cart)
        session.commit()
        return self._build_cart_dto(session, cart)

    def _build_cart_dto(self, session: Session, cart: Cart) -> CartRead:
        items = self.cart_repo.list_items(session, cart.id)

        item_reads: list[CartItemRead] = []
        total_qty = 0
        for it in items:
            product = self.product_repo.get_by_id(session, it.product_id)
            total_qty += it.quantity
            item_reads.append(
                CartItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    product_name=it.product_name,
                    quantity=it.quantity,
                    unit_price=it.unit_price,
                    line_total=round(it.quantity * it.unit_price, 2),
                    stock=product.stock_on_hand if product else None,
                    created_at=it.created_at,
                )
            )

        subtotal = cart_subtotal(items)
        delivery_cost = 0.0
        if cart.delivery_method_id:
            method = self.delivery_repo.get_by_id(session, cart.delivery_method_id)
            if method:
                delivery_cost = method.cost

        return CartRead(
            id=cart.id,
            user_id=cart.user_id,
            items=item_reads,
            total_quantity=total_qty,
            subtotal=subtotal,
            coupon_code=cart.coupon_code,
            discount_amount=cart.discount_amount,
            delivery_method_id=cart.delivery_method_id,
            delivery_cost=delivery_cost,
            total=round(subtotal - cart.discount_amount + delivery_cost, 2),
            payment_intent_id=cart.payment_intent_id,
            client_secret=cart.client_secret,
            updated_at=cart.updated_at,
        )

    # ---- public operations ----

    def get_cart(self, session: Session, user_id: uuid.UUID) -> CartRead:
        """
        Return the user's cart, creating an empty one on first access.
        """
        cart = self.cart_repo.get_or_create(session, user_id)
        return self._build_cart_dto(session, cart)

    def add_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CartItemCreate,
    ) -> CartRead:
        """
        Add a product to the user's cart.

        Rules:
          - product must exist and be active
          - quantity + existing_quantity <= stock_on_hand
          - unit_price is taken from current product.price
        """
        product = self._get_valid_product(session, payload.product_id)
        cart = self.cart_repo.get_or_create(session, user_id, lock=True)

        items = self.cart_repo.list_items(session, cart.id)
        existing = next((it for it in items if it.product_id == product.id), None)

        new_qty = payload.quantity + (existing.quantity if existing else 0)
        if new_qty > product.stock_on_hand:
            raise InsufficientStockError(product.id, product.stock_on_hand, new_qty)

        if existing:
            existing.quantity = new_qty
            existing.unit_price = product.price
            self.cart_repo.update_item(session, existing)
        else:
            self.cart_repo.add_item(
                session,
                CartItem(
                    cart_id=cart.id,
                    product_id=product.id,
                    quantity=payload.quantity,
                    unit_price=product.price,
                    product_name=product.name,
                ),
            )

        return self._commit_mutation(session, cart)

    def update_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> CartRead:
        """
        Set the quantity of a cart line and re-capture its unit price.
        """
        cart = self.cart_repo.get_or_create(session, user_id, lock=True)
        item = self._get_owned_item(session, cart, item_id)
        product = self._get_valid_product(session, item.product_id)

        if payload.quantity > product.stock_on_hand:
            raise InsufficientStockError(
                product.id, product.stock_on_hand, payload.quantity
            )

        item.quantity = payload.quantity
        item.unit_price = product.price
        self.cart_repo.update_item(session, item)

        return self._commit_mutation(session, cart)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> CartRead:
        cart = self.cart_repo.get_or_create(session, user_id, lock=True)
        item = self._get_owned_item(session, cart, item_id)
        self.cart_repo.delete_item(session, item)
        return self._commit_mutation(session, cart)

    def clear_cart(self, session: Session, user_id: uuid.UUID) -> CartRead:
        """
        Remove all items and the applied coupon.
        """
        cart = self.cart_repo.get_or_create(session, user_id, lock=True)
        self.cart_repo.clear_items(session, cart.id)
        cart.coupon_code = None
        return self._commit_mutation(session, cart)

    def apply_coupon(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: ApplyCouponRequest,
    ) -> CartRead:
        """
        Apply a coupon code to the cart.

        Raises NotFound (unknown/inactive), CouponIneligible (expired,
        below minimum) or InvalidState (empty cart).
        """
        cart = self.cart_repo.get_or_create(session, user_id, lock=True)
        items = self.cart_repo.list_items(session, cart.id)
        if not items:
            raise InvalidStateError("Cart is empty")

        coupon, discount = self.coupon_service.apply(
            session, payload.code, cart_subtotal(items)
        )

        cart.coupon_code = coupon.code
        cart.discount_amount = discount
        cart.updated_at = utcnow()
        self.cart_repo.save(session, cart)
        session.commit()
        return self._build_cart_dto(session, cart)

    def remove_coupon(self, session: Session, user_id: uuid.UUID) -> CartRead:
        cart = self.cart_repo.get_or_create(session, user_id, lock=True)
        cart.coupon_code = None
        return self._commit_mutation(session, cart)

    def set_delivery_method(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: SetDeliveryMethodRequest,
    ) -> CartRead:
        method = self.delivery_repo.get_by_id(session, payload.delivery_method_id)
        if not method:
            raise NotFoundError("Delivery method not found")

        cart = self.cart_repo.get_or_create(session, user_id, lock=True)
        cart.delivery_method_id = method.id
        return self._commit_mutation(session, cart)
