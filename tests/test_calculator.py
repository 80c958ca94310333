from datetime import date
from decimal import Decimal

import pytest

from app.modules.invoices.calculator import (
    compute_totals, due_date_for, line_total, quantize_amount, sum_line_totals
)


def test_standard_vat_on_whole_amount():
    totals = compute_totals(Decimal("255.000"), Decimal("5"), vat_exempt=False)
    assert totals.subtotal == Decimal("255.000")
    assert totals.tax_amount == Decimal("12.750")
    assert totals.total_amount == Decimal("267.750")


def test_exempt_customer_pays_no_tax():
    totals = compute_totals(Decimal("255.000"), Decimal("5"), vat_exempt=True)
    assert totals.tax_amount == Decimal("0.000")
    assert totals.total_amount == totals.subtotal == Decimal("255.000")


def test_total_is_subtotal_plus_tax():
    for subtotal in ("0.001", "1.234", "99.999", "1000.010", "12345.678"):
        totals = compute_totals(Decimal(subtotal), Decimal("5"), vat_exempt=False)
        assert totals.total_amount == totals.subtotal + totals.tax_amount


def test_tax_rounds_half_up_at_third_decimal():
    # 0.010 * 5% = 0.0005 -> 0.001
    assert compute_totals(Decimal("0.010"), Decimal("5"), False).tax_amount == Decimal("0.001")
    # 0.009 * 5% = 0.00045 -> 0.000
    assert compute_totals(Decimal("0.009"), Decimal("5"), False).tax_amount == Decimal("0.000")


def test_zero_subtotal():
    totals = compute_totals(Decimal("0"), Decimal("5"), False)
    assert totals.tax_amount == Decimal("0.000")
    assert totals.total_amount == Decimal("0.000")


@pytest.mark.parametrize("value,expected", [
    ("1.0005", "1.001"),
    ("1.0004", "1.000"),
    ("2.5", "2.500"),
])
def test_quantize_amount(value, expected):
    assert quantize_amount(value) == Decimal(expected)


def test_line_total_and_subtotal():
    lines = [line_total(3, Decimal("10.500")), line_total(2, "0.125")]
    assert lines == [Decimal("31.500"), Decimal("0.250")]
    assert sum_line_totals(lines) == Decimal("31.750")


def test_due_date_defaults_to_thirty_days():
    assert due_date_for(date(2025, 1, 15)) == date(2025, 2, 14)
    assert due_date_for(date(2025, 1, 15), days=7) == date(2025, 1, 22)
