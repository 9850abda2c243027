from typing import Callable, Iterable, List, Optional
from uuid import UUID
from sqlmodel import Session, select

from models.notification import Notification, NotificationIntent, NotificationType
from utils.logger import setup_logger

logger = setup_logger(__name__)

NotificationSink = Callable[[Notification], None]


class NotificationDispatcher:
    """Delivers the notification intents returned by engine operations.

    Each intent is persisted as a ``Notification`` (so the read flag has a home)
    and then handed to the optional sink. Delivery is best effort: failures are
    logged and the remaining intents are still delivered.
    """

    def __init__(self, sink: Optional[NotificationSink] = None):
        self.sink = sink

    def dispatch(self, db_session: Session, intents: Iterable[NotificationIntent]) -> List[Notification]:
        delivered: List[Notification] = []

        for intent in intents:
            try:
                notification = Notification(
                    user_id=intent.user_id,
                    type=NotificationType(intent.type).value,
                    title=intent.title,
                    message=intent.message,
                    data={key: str(value) for key, value in intent.data.items() if value is not None},
                )
                db_session.add(notification)
                db_session.commit()
                db_session.refresh(notification)
            except Exception as e:
                db_session.rollback()
                logger.error(
                    "Failed to persist notification",
                    extra={"user_id": intent.user_id, "type": str(intent.type), "error": str(e)},
                    exc_info=True
                )
                continue

            if self.sink is not None:
                try:
                    self.sink(notification)
                except Exception as e:
                    logger.warning(
                        "Notification sink failed",
                        extra={"notification_id": str(notification.id), "error": str(e)}
                    )

            delivered.append(notification)

        if delivered:
            logger.info("Notifications dispatched", extra={"count": len(delivered)})

        return delivered


class NotificationService:
    def get_notifications(
        self,
        db_session: Session,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50
    ) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.read == False)  # noqa: E712

        return list(db_session.exec(query.order_by(Notification.created_at.desc()).limit(limit)).all())

    def mark_read(self, db_session: Session, notification_id: UUID, user_id: str) -> bool:
        notification = db_session.get(Notification, notification_id)
        if not notification or notification.user_id != user_id:
            return False

        if not notification.read:
            notification.read = True
            db_session.add(notification)
            db_session.commit()

        return True

    def mark_all_read(self, db_session: Session, user_id: str) -> int:
        unread = db_session.exec(
            select(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.read == False)  # noqa: E712
        ).all()

        for notification in unread:
            notification.read = True
            db_session.add(notification)
        db_session.commit()

        logger.info("Notifications marked read", extra={"user_id": user_id, "count": len(unread)})
        return len(unread)


notification_dispatcher = NotificationDispatcher()
