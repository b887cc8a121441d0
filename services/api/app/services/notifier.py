from __future__ import annotations

from typing import Protocol
from uuid import uuid4

from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.api.app.db.database import db_session
from services.api.app.db.models import EventLog, Notification


class Notifier(Protocol):
    def notify_new_order(self, *, order_id: str, title: str, message: str) -> str: ...


class DbNotifier:
    """Admin-visible notification records, written in their own session.

    Runs after the order commit, so a failure here never touches the order row.
    """

    def notify_new_order(self, *, order_id: str, title: str, message: str) -> str:
        notification_id = uuid4().hex
        db = db_session()
        try:
            db.add(
                Notification(
                    id=notification_id,
                    type="new_order",
                    entity_id=order_id,
                    title=title,
                    message=message,
                    is_read=False,
                )
            )
            db.add(
                EventLog(
                    id=uuid4().hex,
                    user_id=None,
                    entity_type=EntityTypeV1.NOTIFICATION.value,
                    entity_id=order_id,
                    event_type=EventTypeV1.NOTIFICATION_CREATED.value,
                    event_payload_json={"notification_id": notification_id},
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        return notification_id


def get_notifier() -> Notifier:
    return DbNotifier()
