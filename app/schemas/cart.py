# app/schemas/cart.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(gt=0)


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(gt=0)


class ApplyCouponRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    code: str

    @field_validator("code")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("coupon code cannot be empty")
        return v


class SetDeliveryMethodRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    delivery_method_id: uuid.UUID


class CartItemRead(SQLModel):
    """
    Read model for a single cart item, including line_total.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str | None = None
    quantity: int
    unit_price: float
    line_total: float
    stock: int | None = None
    created_at: datetime


class CartRead(SQLModel):
    """
    Full cart response model with totals.

    total = subtotal - discount_amount + delivery_cost
    """

    id: uuid.UUID
    user_id: uuid.UUID
    items: list[CartItemRead]
    total_quantity: int
    subtotal: float
    coupon_code: str | None = None
    discount_amount: float
    delivery_method_id: uuid.UUID | None = None
    delivery_cost: float
    total: float
    payment_intent_id: str | None = None
    client_secret: str | None = None
    updated_at: datetime
