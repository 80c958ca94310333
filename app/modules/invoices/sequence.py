"""
Per-customer, per-year invoice numbering.

Numbers look like ``CUST001-INV-2025-0042``. The counter row is incremented
with a single UPDATE, which holds the row lock until the surrounding
transaction ends, so concurrent callers queue on the row instead of reading
the same value. Each attempt runs in a savepoint: a lost race on creating the
year's first row (IntegrityError) or a lock conflict (OperationalError) only
rolls back the attempt, which is then retried.
"""
from typing import Optional
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.common.exceptions import SequenceConflict
from app.core.config import settings
from app.modules.invoices.models import InvoiceSequence

logger = logging.getLogger(__name__)


def format_invoice_number(customer_code: str, year: int, sequence: int) -> str:
    # :04d pads to four digits and leaves larger values intact (10000 stays 10000)
    return f"{customer_code}-INV-{year}-{sequence:04d}"


class InvoiceSequenceAllocator:
    def __init__(self, db: Session, max_retries: Optional[int] = None):
        self.db = db
        self.max_retries = max_retries or settings.INVOICE_SEQUENCE_MAX_RETRIES

    def _increment(self, customer_id: UUID, year: int) -> int:
        result = self.db.execute(
            update(InvoiceSequence)
            .where(InvoiceSequence.customer_id == customer_id, InvoiceSequence.year == year)
            .values(current_number=InvoiceSequence.current_number + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # First invoice of the year for this customer
            self.db.add(InvoiceSequence(customer_id=customer_id, year=year, current_number=1))
            self.db.flush()
            return 1

        return self.db.execute(
            select(InvoiceSequence.current_number)
            .where(InvoiceSequence.customer_id == customer_id, InvoiceSequence.year == year)
        ).scalar_one()

    def next_sequence(self, customer_id: UUID, year: int) -> int:
        for attempt in range(1, self.max_retries + 1):
            try:
                with self.db.begin_nested():
                    return self._increment(customer_id, year)
            except (IntegrityError, OperationalError) as e:
                logger.warning(
                    f"Invoice sequence conflict for customer {customer_id}/{year} "
                    f"(attempt {attempt}/{self.max_retries}): {e.__class__.__name__}"
                )
        logger.error(f"Invoice sequence allocation exhausted retries for customer {customer_id}/{year}")
        raise SequenceConflict(customer_id, year, self.max_retries)

    def next_number(self, customer_code: str, customer_id: UUID, year: int) -> str:
        """Issue the next invoice number for (customer, year)."""
        sequence = self.next_sequence(customer_id, year)
        number = format_invoice_number(customer_code, year, sequence)
        logger.info(f"Allocated invoice number {number}")
        return number
