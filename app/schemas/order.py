# app/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import Field, SQLModel

OrderStatusLiteral = Literal["pending", "pending_payment", "processing", "cancelled"]
PaymentMethodLiteral = Literal["online", "cash_on_delivery"]


class ShippingAddress(SQLModel):
    """
    Shipping address value object, embedded into the order on checkout.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: str
    last_name: str
    street: str
    city: str
    country: str

    @field_validator("first_name", "last_name", "street", "city", "country")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class OrderCreate(SQLModel):
    """
    Payload for creating an order from the current cart.

    Backend derives:
      - user_id / buyer_email from token
      - status from payment_method
      - items, subtotal, discount from the cart
    """

    model_config = ConfigDict(extra="forbid")

    delivery_method_id: uuid.UUID
    payment_method: PaymentMethodLiteral
    shipping_address: ShippingAddress


class OrderItemRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str | None = None
    quantity: int
    unit_price: float
    line_total: float


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_id: uuid.UUID
    buyer_email: str
    status: OrderStatusLiteral
    payment_method: PaymentMethodLiteral
    delivery_method_id: uuid.UUID | None
    subtotal: float
    discount_amount: float
    coupon_code: str | None
    delivery_cost: float
    total_amount: float
    payment_intent_id: str | None
    created_at: datetime


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items, shipping address and client secret
    (the buyer needs it to confirm the payment).
    """

    client_secret: str | None = None
    shipping_address: ShippingAddress
    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatusLiteral


class OrderOperationResult(SQLModel):
    """
    Outcome of an operation whose refusal is an expected business result
    (e.g. cancelling an order that is already processing).
    """

    success: bool
    message: str
    order_id: uuid.UUID
    status: OrderStatusLiteral
    error_type: str | None = None


class DeliveryMethodRead(SQLModel):
    id: uuid.UUID
    short_name: str
    description: str | None
    delivery_time: str | None
    cost: float


class DeliveryMethodCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    short_name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    delivery_time: str | None = Field(default=None, max_length=100)
    cost: float = Field(ge=0)


class DeliveryMethodUpdate(SQLModel):
    """
    Partial update payload for delivery methods.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")

    short_name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    delivery_time: str | None = Field(default=None, max_length=100)
    cost: float | None = Field(default=None, ge=0)
