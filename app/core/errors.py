# app/core/errors.py
"""
Business error taxonomy for the order/payment core.

Services raise these; the API layer maps them to JSON responses through
the exception handler registered in app.main (status_code, error_type).
"""
import uuid


class ShopError(Exception):
    """Base exception for all marketplace business errors."""

    status_code: int = 400
    error_type: str = "ShopError"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ShopError):
    """Missing cart, order, product, coupon or delivery method."""

    status_code = 404
    error_type = "NotFound"


class InvalidStateError(ShopError):
    """Operation not valid for the current cart/order state."""

    status_code = 409
    error_type = "InvalidState"


class InsufficientStockError(ShopError):
    """Requested quantity exceeds the product's available stock."""

    status_code = 400
    error_type = "InsufficientStock"

    def __init__(self, product_id: uuid.UUID, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id} "
            f"(available {available}, requested {requested})"
        )


class CouponIneligibleError(ShopError):
    """Coupon exists but cannot be applied to this cart."""

    status_code = 400
    error_type = "CouponIneligible"
    reason: str = "ineligible"


class CouponNotFoundError(NotFoundError):
    error_type = "NotFound"
    reason = "not_found"

    def __init__(self, code: str):
        self.code = code
        super().__init__("Invalid or inactive coupon code")


class CouponExpiredError(CouponIneligibleError):
    reason = "expired"

    def __init__(self, code: str):
        self.code = code
        super().__init__("Coupon has expired")


class CouponBelowMinimumError(CouponIneligibleError):
    reason = "below_minimum"

    def __init__(self, code: str, min_order_amount: float):
        self.code = code
        self.min_order_amount = min_order_amount
        super().__init__(
            f"Minimum order amount of {min_order_amount:.2f} required"
        )


class UnauthorizedError(ShopError):
    """Acting on another user's cart or order."""

    status_code = 403
    error_type = "Unauthorized"


class GatewayFailureError(ShopError):
    """Payment gateway call failed or timed out."""

    status_code = 502
    error_type = "GatewayFailure"

    def __init__(self, message: str = "Payment gateway unavailable"):
        super().__init__(message)


# Public detail returned for 5xx errors; internal messages stay in the logs.
GENERIC_SERVER_DETAIL = "Payment service temporarily unavailable"
