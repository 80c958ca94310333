"""
Invoice totals for a 3-decimal currency (OMR baisa).
"""

from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from app.core.config import settings
from app.modules.invoices.schemas import InvoiceTotals

MINOR_UNIT = Decimal("0.001")


def quantize_amount(amount) -> Decimal:
    """Round half-up to the currency's minor unit."""
    return Decimal(str(amount)).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price) -> Decimal:
    return quantize_amount(Decimal(quantity) * Decimal(str(unit_price)))


def sum_line_totals(totals: Iterable) -> Decimal:
    subtotal = Decimal("0.000")
    for value in totals:
        subtotal += Decimal(str(value))
    return quantize_amount(subtotal)


def compute_totals(subtotal, vat_rate, vat_exempt: bool) -> InvoiceTotals:
    """
    Compute tax and total for an invoice.

    Args:
        subtotal: exact sum of the order's line totals, supplied by the caller
        vat_rate: percentage, e.g. 5 for 5%
        vat_exempt: when True no tax is charged

    Returns:
        InvoiceTotals with subtotal, tax_amount and total_amount at 3 decimals
    """
    subtotal = quantize_amount(subtotal)
    if vat_exempt:
        return InvoiceTotals(subtotal=subtotal, tax_amount=quantize_amount(0), total_amount=subtotal)

    tax_amount = quantize_amount(subtotal * Decimal(str(vat_rate)) / Decimal("100"))
    total_amount = quantize_amount(subtotal + tax_amount)
    return InvoiceTotals(subtotal=subtotal, tax_amount=tax_amount, total_amount=total_amount)


def due_date_for(issue_date: date, days: Optional[int] = None) -> date:
    return issue_date + timedelta(days=settings.INVOICE_DUE_DAYS if days is None else days)
