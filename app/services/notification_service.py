# app/services/notification_service.py
import logging
import smtplib
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.email_client import is_email_configured, send_email
from app.models.notification import Notification
from app.repositories.notification_repo import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Fire-and-forget user notifications.

    A notification is stored for the in-app inbox and, when SMTP is
    configured and an address is known, e-mailed as well. Failures are
    logged and never reach the caller.
    """

    def __init__(self, repo: NotificationRepository):
        self.repo = repo

    def notify(
        self,
        session: Session,
        user_id: uuid.UUID,
        message: str,
        email: str | None = None,
        subject: str = "[PetMart] Order update",
    ) -> None:
        try:
            self.repo.create(session, Notification(user_id=user_id, message=message))
        except SQLAlchemyError:
            session.rollback()
            logger.warning("Could not store notification for user %s", user_id, exc_info=True)

        if not email or not is_email_configured():
            return

        try:
            send_email(to_email=email, subject=subject, text_body=message)
        except (smtplib.SMTPException, OSError, RuntimeError):
            logger.warning("Could not e-mail notification to %s", email, exc_info=True)
