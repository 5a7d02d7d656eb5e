# app/routers/admin_delivery_methods.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.dependencies import get_delivery_service
from app.schemas.order import (
    DeliveryMethodCreate,
    DeliveryMethodRead,
    DeliveryMethodUpdate,
)
from app.services.delivery_service import DeliveryMethodService

router = APIRouter(
    prefix="/admin/delivery-methods",
    tags=["Admin Delivery Methods"],
    dependencies=[Depends(require_admin)],
)


@router.post(
    "",
    response_model=DeliveryMethodRead,
    status_code=status.HTTP_201_CREATED,
)
def create_delivery_method(
    payload: DeliveryMethodCreate,
    session: Session = Depends(get_session),
    service: DeliveryMethodService = Depends(get_delivery_service),
):
    return service.create_method(session, payload)


@router.patch("/{delivery_method_id}", response_model=DeliveryMethodRead)
def update_delivery_method(
    delivery_method_id: uuid.UUID,
    payload: DeliveryMethodUpdate,
    session: Session = Depends(get_session),
    service: DeliveryMethodService = Depends(get_delivery_service),
):
    """
    Update name, description, delivery time or cost.
    """
    return service.update_method(session, delivery_method_id, payload)


@router.delete(
    "/{delivery_method_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_delivery_method(
    delivery_method_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: DeliveryMethodService = Depends(get_delivery_service),
):
    """
    Delete a delivery method. Refused with 409 while orders still use it.
    """
    service.delete_method(session, delivery_method_id)
    return None
