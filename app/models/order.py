# app/models/order.py
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlmodel import SQLModel, Field


class OrderStatus(str, Enum):
    """
    Order lifecycle:

      pending / pending_payment -> processing, cancelled
      processing                -> (terminal for this backend)
      cancelled                 -> (terminal, stock already restored)
    """

    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    PROCESSING = "processing"
    CANCELLED = "cancelled"


OPEN_STATUSES = frozenset({OrderStatus.PENDING.value, OrderStatus.PENDING_PAYMENT.value})


class PaymentMethod(str, Enum):
    ONLINE = "online"
    CASH_ON_DELIVERY = "cash_on_delivery"


class Order(SQLModel, table=True):
    """
    Immutable snapshot of a cart at checkout.

    Only `status` changes after creation.
    Invariant: total_amount == subtotal - discount_amount + delivery_cost.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    buyer_email: str = Field(max_length=200)

    status: str = Field(
        default=OrderStatus.PENDING.value,
        index=True,
        description="pending | pending_payment | processing | cancelled",
    )

    payment_method: str = Field(
        default=PaymentMethod.CASH_ON_DELIVERY.value,
        description="online | cash_on_delivery",
    )

    delivery_method_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="delivery_methods.id",
    )

    subtotal: float
    discount_amount: float = Field(default=0.0)
    coupon_code: str | None = Field(default=None, max_length=50)
    delivery_cost: float = Field(default=0.0)
    total_amount: float

    # Shipping address (embedded value object)
    ship_first_name: str = Field(max_length=100)
    ship_last_name: str = Field(max_length=100)
    ship_street: str = Field(max_length=200)
    ship_city: str = Field(max_length=100)
    ship_country: str = Field(max_length=100)

    # Set only for online payment
    payment_intent_id: str | None = Field(
        default=None,
        max_length=200,
        index=True,
    )
    client_secret: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order; an independent copy of the cart line.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    product_name: str | None = None

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    unit_price: float = Field(
        description="Live product price at checkout",
    )
