# app/repositories/coupon_repo.py
from sqlmodel import Session, select

from app.models.coupon import Coupon


class CouponRepository:
    """
    Read access to coupons (admin CRUD lives elsewhere).
    """

    def find_active_by_code(self, session: Session, code: str) -> Coupon | None:
        stmt = select(Coupon).where(Coupon.code == code, Coupon.is_active == True)  # noqa: E712
        return session.exec(stmt).first()
