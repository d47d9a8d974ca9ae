from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Optional, Protocol

from sqlmodel import Session, select

from freelancehub.core.exceptions import NotFound
from freelancehub.models import Notification
from freelancehub.schemas.notification import NotificationRead

logger = logging.getLogger(__name__)


class NotificationPublisher(Protocol):
    """Pushes an event to one user's private live channel.

    Implementations must be callable from any thread and must not block on
    delivery.
    """

    def publish_to_user(self, user_id: int, event: str, data: Any) -> None: ...


class NullPublisher:
    def publish_to_user(self, user_id: int, event: str, data: Any) -> None:
        logger.debug("live channel disabled, dropping event=%s user_id=%s", event, user_id)


class NotificationDispatcher:
    # Pushes for one user leave in insert order: the insert, commit and
    # publish of a notification happen under that user's stripe.
    _delivery_locks = tuple(threading.Lock() for _ in range(64))

    def __init__(self, session: Session, publisher: NotificationPublisher) -> None:
        self.session = session
        self.publisher = publisher

    def notify(self, user_id: int, message: str) -> Notification:
        """Persist a notification, then push it live.

        Returns once the row is committed. A failed push is logged and
        otherwise ignored; the user sees the notification on the next poll.
        Notifications for the same user are pushed in id order.
        """
        # No database lock may be held while waiting on a stripe.
        self.session.commit()

        with self._delivery_locks[user_id % len(self._delivery_locks)]:
            notification = Notification(user_id=user_id, message=message)
            self.session.add(notification)
            self.session.flush()
            payload = NotificationRead.model_validate(notification).model_dump(mode="json")
            self.session.commit()

            try:
                self.publisher.publish_to_user(user_id, "new_notification", payload)
            except Exception:
                logger.exception("live push failed notification_id=%s user_id=%s", payload["id"], user_id)
        return notification

    def notify_best_effort(self, user_id: int, message: str) -> Optional[Notification]:
        """``notify`` for post-commit side effects: never raises."""
        try:
            return self.notify(user_id, message)
        except Exception:
            self.session.rollback()
            logger.exception("failed to persist notification user_id=%s", user_id)
            return None

    def publish_best_effort(self, user_id: int, event: str, data: Any) -> None:
        try:
            self.publisher.publish_to_user(user_id, event, data)
        except Exception:
            logger.exception("live push failed event=%s user_id=%s", event, user_id)

    def list_for_user(self, user_id: int) -> list[Notification]:
        return list(
            self.session.exec(
                select(Notification)
                .where(Notification.user_id == user_id)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
            ).all()
        )

    def mark_read(self, user_id: int, notification_id: int) -> Notification:
        notification = self.session.get(Notification, notification_id)
        # Someone else's notification is reported as missing.
        if notification is None or notification.user_id != user_id:
            raise NotFound("Notification not found or unauthorized")

        if not notification.is_read:
            notification.is_read = True
            notification.updated_at = datetime.utcnow()
            self.session.add(notification)
            self.session.commit()
            self.session.refresh(notification)
        return notification

    def mark_all_read(self, user_id: int) -> int:
        unread = self.session.exec(
            select(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.is_read.is_(False))
        ).all()
        now = datetime.utcnow()
        for notification in unread:
            notification.is_read = True
            notification.updated_at = now
            self.session.add(notification)
        self.session.commit()
        return len(unread)
