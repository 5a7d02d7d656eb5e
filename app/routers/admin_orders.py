# app/routers/admin_orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.dependencies import get_order_service
from app.schemas.order import (
    OrderOperationResult,
    OrderRead,
    OrderStatusLiteral,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from app.services.order_service import OrderService

router = APIRouter(
    prefix="/admin/orders",
    tags=["Admin Orders"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=list[OrderRead])
def list_all_orders(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    skip: int = 0,
    limit: int = 50,
    status: OrderStatusLiteral | None = None,
):
    """
    List all orders, newest first, optionally filtered by status.
    """
    return service.list_all_orders(session, skip, limit, status)


@router.get("/{order_id}", response_model=OrderWithItemsRead)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.get_order_admin(session, order_id)


@router.patch("/{order_id}/status", response_model=OrderRead)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Update order status with the order state machine.

      pending / pending_payment -> processing, cancelled

      processing -> (no change)

      cancelled  -> (no change)

    Cancelling restores stock.
    """
    return service.update_status(session, order_id, payload)


@router.delete("/{order_id}", response_model=OrderOperationResult)
def delete_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Delete an order and its items, restoring stock first.
    """
    return service.delete_order(session, order_id)
