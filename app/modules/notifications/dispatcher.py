"""
Fire-and-forget notification dispatch.

Always called after the business transaction has committed; a broker outage
is logged and swallowed so it can never undo an approval or an invoice.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

logger = logging.getLogger(__name__)

ORDER_APPROVED = "order-approved"
ORDER_REJECTED = "order-rejected"
INVOICE_GENERATED = "invoice-generated"
PAYMENT_CONFIRMED = "payment-confirmed"
APPROVAL_REQUIRED = "order-approval-required"


def _serialize(value):
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


class NotificationDispatcher:
    def notify(self, user_id: Optional[UUID], event_type: str, payload: Dict[str, Any]) -> None:
        if user_id is None:
            logger.debug(f"Skipping {event_type} notification without recipient")
            return
        try:
            from app.modules.notifications.tasks import send_notification_task

            send_notification_task.delay(str(user_id), event_type, _serialize(payload))
            logger.info(f"Queued {event_type} notification for user {user_id}")
        except Exception as e:
            logger.warning(f"Could not queue {event_type} notification for user {user_id}: {e}")


notification_dispatcher = NotificationDispatcher()


def get_notifier() -> NotificationDispatcher:
    return notification_dispatcher
