# app/services/order_cleanup.py
import asyncio
import logging
import threading
from datetime import timedelta
from typing import Callable

from sqlmodel import Session

from app.core.clock import utcnow
from app.core.errors import GatewayFailureError
from app.core.payment_gateway import PaymentGateway
from app.models.order import OrderStatus
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

EXPIRED_ORDER_MESSAGE = (
    "Your order has been cancelled because the payment was not completed."
)


class ExpiredOrderCleanupWorker:
    """
    Periodically removes online orders whose payment never completed.

    Each cycle:
      - finds pending_payment orders older than `max_age`
      - per order: restores stock, voids the payment intent, deletes the
        order, then notifies the buyer
    One failing order is logged and skipped; the rest of the batch still runs.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        gateway: PaymentGateway,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        notifier: NotificationService,
        interval: timedelta = timedelta(days=1),
        max_age: timedelta = timedelta(hours=24),
    ):
        self.session_factory = session_factory
        self.gateway = gateway
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.notifier = notifier
        self.interval = interval
        self.max_age = max_age
        self._stop = threading.Event()

    def run_cycle(self, now=None) -> int:
        """
        Run one cleanup pass. Returns the number of orders removed.
        """
        now = now or utcnow()
        cutoff = now - self.max_age

        with self.session_factory() as session:
            expired_ids = [
                o.id for o in self.order_repo.list_expired_pending_payment(session, cutoff)
            ]

        if expired_ids:
            logger.info("Found %d expired pending-payment orders", len(expired_ids))

        removed = 0
        failed = []
        for index, order_id in enumerate(expired_ids):
            if self._stop.is_set():
                logger.info("Cleanup interrupted; %d orders left", len(expired_ids) - index)
                break
            try:
                with self.session_factory() as session:
                    if self._expire_order(session, order_id):
                        removed += 1
            except Exception:
                # rolled back with its session; retried next cycle
                logger.exception("Failed to clean up expired order %s", order_id)
                failed.append(order_id)

        if failed:
            logger.warning(
                "Cleanup cycle removed %d orders, %d failed: %s",
                removed,
                len(failed),
                ", ".join(str(i) for i in failed),
            )
        return removed

    def _expire_order(self, session: Session, order_id) -> bool:
        order = self.order_repo.get_by_id(session, order_id, lock=True)
        # paid or cancelled since the scan
        if order is None or order.status != OrderStatus.PENDING_PAYMENT.value:
            session.rollback()
            return False

        user_id = order.user_id
        email = order.buyer_email
        intent_id = order.payment_intent_id

        items = self.order_repo.list_items_for_order(session, order.id)
        self.product_repo.release_order_items(session, items)

        if intent_id:
            try:
                self.gateway.cancel_intent(intent_id)
            except GatewayFailureError:
                logger.warning("Could not cancel payment intent %s", intent_id)

        self.order_repo.delete_order(session, order)
        session.commit()
        logger.info("Removed expired order %s (intent %s)", order_id, intent_id)

        self._notify(session, user_id, email)
        return True

    def _notify(self, session: Session, user_id, email: str | None) -> None:
        self.notifier.notify(
            session,
            user_id,
            EXPIRED_ORDER_MESSAGE,
            email=email,
            subject="[PetMart] Order cancelled",
        )

    async def run_forever(self) -> None:
        """
        Loop until stop(); the blocking pass runs in a worker thread.
        """
        logger.info(
            "Order cleanup worker started (every %s, max age %s)",
            self.interval,
            self.max_age,
        )
        while not self._stop.is_set():
            try:
                removed = await asyncio.to_thread(self.run_cycle)
                if removed:
                    logger.info("Cleanup cycle removed %d orders", removed)
            except Exception:
                logger.exception("Order cleanup cycle failed")

            # returns early once stop() is called
            await asyncio.to_thread(self._stop.wait, self.interval.total_seconds())
        logger.info("Order cleanup worker stopped")

    def stop(self) -> None:
        self._stop.set()
