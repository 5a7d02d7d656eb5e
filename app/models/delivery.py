# app/models/delivery.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class DeliveryMethod(SQLModel, table=True):
    """
    Shipping option chosen at checkout.
    """

    __tablename__ = "delivery_methods"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    short_name: str = Field(max_length=100)

    description: str | None = None

    delivery_time: str | None = Field(default=None, max_length=100)

    cost: float = Field(default=0.0, ge=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
