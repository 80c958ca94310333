"""
Scheduled billing tasks.
"""
import logging
from datetime import date
from typing import Optional

from app.core.celery import celery_app
from app.database.database import SessionLocal
from app.modules.invoices.service import InvoiceService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def mark_overdue_invoices_task(self, as_of: Optional[str] = None):
    """
    Daily sweep: pending invoices past their due date become overdue.
    """
    db = SessionLocal()
    try:
        as_of_date = date.fromisoformat(as_of) if as_of else date.today()
        marked = InvoiceService(db).mark_overdue_invoices(as_of_date)
        logger.info(f"Overdue sweep as of {as_of_date}: {marked} invoices marked overdue")
        return {"status": "success", "as_of": as_of_date.isoformat(), "marked_overdue": marked}

    except Exception as exc:
        logger.error(f"Overdue sweep failed: {str(exc)}")

        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

        return {"status": "failed", "error": str(exc)}
    finally:
        db.close()
