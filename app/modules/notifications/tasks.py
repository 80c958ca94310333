"""
Celery tasks for notification delivery.
"""
import logging
from typing import Dict, Any
from uuid import UUID

from app.core.celery import celery_app
from app.database.database import SessionLocal
from app.modules.notifications.models import Notification

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def send_notification_task(self, user_id: str, event_type: str, payload: Dict[str, Any]):
    """
    Store the notification in the user's inbox.
    """
    db = SessionLocal()
    try:
        db.add(Notification(user_id=UUID(user_id), event_type=event_type, payload=payload))
        db.commit()
        logger.info(f"Notification {event_type} stored for user {user_id}")
        return {"status": "success", "user_id": user_id, "event_type": event_type}

    except Exception as exc:
        db.rollback()
        logger.error(f"Notification {event_type} for user {user_id} failed: {str(exc)}")

        # Retry with exponential backoff
        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

        return {"status": "failed", "error": str(exc), "user_id": user_id}
    finally:
        db.close()
