# app/schemas/payment.py
from sqlmodel import SQLModel


class PaymentIntentRead(SQLModel):
    """
    Intent currently attached to the user's cart.
    """

    intent_id: str
    client_secret: str | None
    amount: float
    currency: str
    status: str


class PaymentValidationRead(SQLModel):
    intent_id: str
    valid: bool
