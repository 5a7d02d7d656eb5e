# app/models/coupon.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Coupon(SQLModel, table=True):
    """
    Discount code.

    rate is a percentage when is_percentage is True, otherwise a flat amount.
    """

    __tablename__ = "coupons"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=200)

    code: str = Field(
        max_length=50,
        unique=True,
        index=True,
    )

    rate: float = Field(ge=0)

    is_percentage: bool = Field(default=True)

    is_active: bool = Field(default=True, index=True)

    expires_at: datetime | None = None

    min_order_amount: float = Field(default=0.0, ge=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
