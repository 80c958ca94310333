from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime

from app.modules.invoices.models import InvoiceStatus


class InvoiceTotals(BaseModel):
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


class InvoiceLineItemOut(BaseModel):
    id: UUID
    order_item_id: UUID
    description: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class InvoiceOut(BaseModel):
    id: UUID
    customer_id: UUID
    order_id: UUID
    invoice_number: str
    status: InvoiceStatus
    issue_date: date
    due_date: date
    subtotal: Decimal
    vat_rate: Decimal
    vat_exempt: bool
    tax_amount: Decimal
    total_amount: Decimal
    currency: str
    customer_vatin: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InvoiceDetail(InvoiceOut):
    line_items: List[InvoiceLineItemOut] = []


class MarkPaidRequest(BaseModel):
    paid_at: Optional[datetime] = Field(None, description="Payment time reported by the payment subsystem")


class InvoiceCancelRequest(BaseModel):
    reason: str = Field(..., min_length=3, max_length=500)


class OverdueSweepResult(BaseModel):
    as_of: date
    marked_overdue: int


class InvoiceList(BaseModel):
    invoices: List[InvoiceOut]
    total: int
    limit: int
    offset: int
