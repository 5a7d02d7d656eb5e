# app/services/delivery_service.py
import logging
import uuid

from sqlmodel import Session

from app.core.errors import InvalidStateError, NotFoundError
from app.models.delivery import DeliveryMethod
from app.repositories.delivery_repo import DeliveryMethodRepository
from app.schemas.order import (
    DeliveryMethodCreate,
    DeliveryMethodRead,
    DeliveryMethodUpdate,
)

logger = logging.getLogger(__name__)


class DeliveryMethodService:
    """
    Public listing and admin management of delivery methods.

    Orders keep their delivery cost as a snapshot, so editing a method's
    cost only affects carts and future checkouts.
    """

    def __init__(self, repo: DeliveryMethodRepository):
        self.repo = repo

    def list_methods(self, session: Session) -> list[DeliveryMethodRead]:
        return [DeliveryMethodRead.model_validate(m) for m in self.repo.list_all(session)]

    def get_method(
        self, session: Session, delivery_method_id: uuid.UUID
    ) -> DeliveryMethod:
        method = self.repo.get_by_id(session, delivery_method_id)
        if method is None:
            raise NotFoundError("Delivery method not found")
        return method

    def create_method(
        self, session: Session, payload: DeliveryMethodCreate
    ) -> DeliveryMethod:
        method = DeliveryMethod(
            short_name=payload.short_name.strip(),
            description=payload.description,
            delivery_time=payload.delivery_time,
            cost=payload.cost,
        )
        method = self.repo.create(session, method)
        logger.info("Created delivery method %s (%s)", method.id, method.short_name)
        return method

    def update_method(
        self,
        session: Session,
        delivery_method_id: uuid.UUID,
        payload: DeliveryMethodUpdate,
    ) -> DeliveryMethod:
        """
        Partial update; fields left out of the payload are kept.
        """
        method = self.get_method(session, delivery_method_id)

        if payload.short_name is not None:
            method.short_name = payload.short_name.strip()

        if payload.description is not None:
            method.description = payload.description

        if payload.delivery_time is not None:
            method.delivery_time = payload.delivery_time

        if payload.cost is not None:
            method.cost = payload.cost

        return self.repo.update(session, method)

    def delete_method(self, session: Session, delivery_method_id: uuid.UUID) -> None:
        """
        Delete a delivery method no order refers to.

        Carts that picked it are reset to no method.
        """
        method = self.get_method(session, delivery_method_id)

        in_use = self.repo.count_orders_using(session, delivery_method_id)
        if in_use:
            raise InvalidStateError(
                f"Cannot delete delivery method. It's used in {in_use} order(s)"
            )

        self.repo.delete(session, method)
        logger.info("Deleted delivery method %s", delivery_method_id)
