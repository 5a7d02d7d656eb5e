# app/services/coupon_service.py
from datetime import datetime

from sqlmodel import Session

from app.core.clock import ensure_utc, utcnow
from app.core.errors import (
    CouponBelowMinimumError,
    CouponExpiredError,
    CouponIneligibleError,
    CouponNotFoundError,
)
from app.models.coupon import Coupon
from app.repositories.coupon_repo import CouponRepository


def evaluate_coupon(
    coupon: Coupon,
    subtotal: float,
    now: datetime | None = None,
) -> float:
    """
    Compute the discount a coupon grants on `subtotal`.

    Checks run before any math and short-circuit with a typed error:
      - inactive            -> CouponNotFoundError
      - expired             -> CouponExpiredError
      - below minimum order -> CouponBelowMinimumError

    Percentage coupons take rate% of the subtotal, fixed coupons take
    `rate` as is. The result is always within [0, subtotal].
    """
    if not coupon.is_active:
        raise CouponNotFoundError(coupon.code)

    now = now or utcnow()
    if coupon.expires_at is not None and ensure_utc(coupon.expires_at) < now:
        raise CouponExpiredError(coupon.code)

    if subtotal < coupon.min_order_amount:
        raise CouponBelowMinimumError(coupon.code, coupon.min_order_amount)

    if coupon.is_percentage:
        discount = subtotal * (coupon.rate / 100)
    else:
        discount = coupon.rate

    discount = round(discount, 2)
    return min(max(discount, 0.0), subtotal)


class CouponService:
    """
    Looks up coupons by code and evaluates them against a subtotal.
    """

    def __init__(self, coupon_repo: CouponRepository):
        self.coupon_repo = coupon_repo

    def apply(self, session: Session, code: str, subtotal: float) -> tuple[Coupon, float]:
        """
        Strict evaluation used when the user applies a code.

        Raises CouponNotFoundError / CouponExpiredError / CouponBelowMinimumError.
        """
        coupon = self.coupon_repo.find_active_by_code(session, code)
        if coupon is None:
            raise CouponNotFoundError(code)

        discount = evaluate_coupon(coupon, subtotal)
        if discount <= 0:
            raise CouponIneligibleError("Coupon does not reduce this order")
        return coupon, discount

    def recalculate(
        self,
        session: Session,
        code: str | None,
        subtotal: float,
    ) -> tuple[str | None, float]:
        """
        Lenient evaluation used after cart changes and at checkout.

        Returns (code, discount), or (None, 0.0) when the coupon no longer
        applies; the caller clears it silently.
        """
        if not code:
            return None, 0.0
        try:
            _, discount = self.apply(session, code, subtotal)
        except (CouponNotFoundError, CouponIneligibleError):
            return None, 0.0
        return code, discount
