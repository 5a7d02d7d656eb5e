# app/repositories/notification_repo.py
from sqlmodel import Session

from app.models.notification import Notification


class NotificationRepository:

    def create(self, session: Session, notification: Notification) -> Notification:
        """
        Notifications are committed on their own; callers have already
        committed the order change they describe.
        """
        session.add(notification)
        session.commit()
        session.refresh(notification)
        return notification
