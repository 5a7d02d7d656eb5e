# app/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.dependencies import get_cart_service
from app.models.user import User
from app.schemas.cart import (
    ApplyCouponRequest,
    CartItemCreate,
    CartItemUpdate,
    CartRead,
    SetDeliveryMethodRequest,
)
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=CartRead)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    """
    Get current user's cart (created empty on first access).

    Auth:
      - Only role='user' (customer) can access.
      - Admins are forbidden.
    """
    return service.get_cart(session, current_user.id)


@router.post("/items", response_model=CartRead)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    """
    Add product to the current user's cart.

    Returns the updated cart.
    """
    return service.add_item(session, current_user.id, payload)


@router.patch("/items/{item_id}", response_model=CartRead)
def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    """
    Update quantity of a cart line.
    """
    return service.update_item(
        session=session,
        user_id=current_user.id,
        item_id=item_id,
        payload=payload,
    )


@router.delete("/items/{item_id}", response_model=CartRead)
def remove_cart_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    return service.remove_item(session, current_user.id, item_id)


@router.delete("", response_model=CartRead)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    """
    Clear the entire cart (items and coupon).
    """
    return service.clear_cart(session, current_user.id)


@router.post("/coupon", response_model=CartRead)
def apply_coupon(
    payload: ApplyCouponRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    """
    Apply a coupon code; the discount follows later cart changes.
    """
    return service.apply_coupon(session, current_user.id, payload)


@router.delete("/coupon", response_model=CartRead)
def remove_coupon(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    return service.remove_coupon(session, current_user.id)


@router.put("/delivery-method", response_model=CartRead)
def set_delivery_method(
    payload: SetDeliveryMethodRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    """
    Select the delivery method whose cost is added to the cart total.
    """
    return service.set_delivery_method(session, current_user.id, payload)
