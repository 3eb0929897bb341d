"""Notification outbox adapter.

Writes each event to the ``notifications`` table in its own session so a
delivery problem can never roll back or block the lifecycle transaction that
produced it.
"""
from barter_engine import database
from barter_engine.models.db import Notification
from barter_engine.models.db.enums import NotificationKind
from barter_engine.utils import get_logger
from .base import NotificationSink

logger = get_logger(__name__)


class OutboxNotificationSink(NotificationSink):
    def notify(self, user_id: int, kind: NotificationKind, text: str) -> None:
        session = database.SessionLocal()
        try:
            session.add(Notification(user_id=user_id, kind=kind, text=text))
            session.commit()
            logger.debug("Notification queued", user_id=user_id, kind=kind.value)
        except Exception as e:
            session.rollback()
            logger.warning("Notification delivery failed", user_id=user_id, kind=kind.value, error=str(e))
        finally:
            session.close()
