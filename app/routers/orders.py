# app/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.dependencies import get_delivery_service, get_order_service
from app.models.user import User
from app.schemas.order import (
    DeliveryMethodRead,
    OrderCreate,
    OrderOperationResult,
    OrderRead,
    OrderWithItemsRead,
)
from app.services.delivery_service import DeliveryMethodService
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


def operation_response(result: OrderOperationResult):
    """
    Successful results go out as 200; refusals keep the body but use 409.
    """
    if result.success:
        return result
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=result.model_dump(mode="json"),
    )


@router.get(
    "/delivery-methods",
    response_model=list[DeliveryMethodRead],
)
def list_delivery_methods(
    session: Session = Depends(get_session),
    service: DeliveryMethodService = Depends(get_delivery_service),
):
    """
    Public list of delivery methods, cheapest first.
    """
    return service.list_methods(session)


@router.post(
    "/checkout",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
)
def checkout(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: OrderService = Depends(get_order_service),
):
    """
    Create an order from the current user's cart.

    Auth:
      - Only role='user' (customer) can checkout.

    Online orders come back as pending_payment with the client secret
    needed to confirm the payment.
    """
    return service.create_order(session, current_user.id, current_user.email, payload)


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: OrderService = Depends(get_order_service),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders (without items), newest first.
    """
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: OrderService = Depends(get_order_service),
):
    """
    Get a single order (with items) belonging to the current user.
    """
    return service.get_user_order(session, current_user.id, order_id)


@router.post(
    "/me/{order_id}/cancel",
    response_model=OrderOperationResult,
)
def cancel_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    service: OrderService = Depends(get_order_service),
):
    """
    Cancel an order that is still pending; reserved stock is restored.
    """
    result = service.cancel_order(session, current_user.id, order_id)
    return operation_response(result)
