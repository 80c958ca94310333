from app.database.database import Base
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Numeric, Enum, Date, Text, Uuid
from sqlalchemy.orm import relationship
from datetime import date
from uuid import uuid4
from app.common.mixins import BaseMixin, TimestampMixin
import enum


class InvoiceStatus(enum.Enum):
    PENDING = "pending"      # Emitida, pendiente de pago
    PAID = "paid"            # Pagada
    OVERDUE = "overdue"      # Vencida sin pago
    CANCELLED = "cancelled"  # Anulada


class Invoice(Base, BaseMixin):
    __tablename__ = "invoices"

    # One invoice per order: order_id is the idempotency key
    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id"), nullable=False, unique=True)

    invoice_number = Column(String(50), nullable=False, unique=True)
    status = Column(Enum(InvoiceStatus), nullable=False, default=InvoiceStatus.PENDING)

    # Dates
    issue_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Totals (3 decimals, minor units of OMR)
    subtotal = Column(Numeric(15, 3), nullable=False)
    vat_rate = Column(Numeric(5, 2), nullable=False)
    vat_exempt = Column(Boolean, nullable=False, default=False)
    tax_amount = Column(Numeric(15, 3), nullable=False)
    total_amount = Column(Numeric(15, 3), nullable=False)
    currency = Column(String(3), nullable=False, default="OMR")

    customer_vatin = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    order = relationship("Order", back_populates="invoice")
    customer = relationship("Customer")
    line_items = relationship("InvoiceLineItem", back_populates="invoice", cascade="all, delete-orphan")


class InvoiceLineItem(Base, TimestampMixin):
    __tablename__ = "invoice_line_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("invoices.id"), nullable=False)
    order_item_id = Column(Uuid(as_uuid=True), ForeignKey("order_items.id"), nullable=False)

    # Snapshot of the order line
    description = Column(String(300), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(15, 3), nullable=False)
    line_total = Column(Numeric(15, 3), nullable=False)

    invoice = relationship("Invoice", back_populates="line_items")


class InvoiceSequence(Base, TimestampMixin):
    """Last issued invoice sequence per customer and calendar year"""
    __tablename__ = "invoice_sequences"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=False)
    year = Column(Integer, nullable=False)
    current_number = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("customer_id", "year", name="uq_sequence_customer_year"),
    )
