# app/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Cart(SQLModel, table=True):
    """
    The user's single mutable basket.

    Created lazily on first access, emptied after checkout, never deleted.
    Invariant: discount_amount <= subtotal, coupon_code is None when
    discount_amount is 0.
    """

    __tablename__ = "carts"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        unique=True,
        index=True,
    )

    coupon_code: str | None = Field(default=None, max_length=50)

    discount_amount: float = Field(default=0.0, ge=0)

    delivery_method_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="delivery_methods.id",
    )

    # In-flight gateway payment intent for this basket
    payment_intent_id: str | None = Field(default=None, max_length=200)
    client_secret: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CartItem(SQLModel, table=True):
    """
    Cart line. One cart cannot have 2 rows for the same product.
    """

    __tablename__ = "cart_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    unit_price: float = Field(
        description="Price captured when the item was added/updated",
    )

    product_name: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
