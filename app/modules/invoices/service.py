from fastapi import HTTPException, status
from sqlalchemy import desc
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID
import logging

from app.common.exceptions import (
    DuplicateInvoice, InvalidTransition, NotFound, TransientConflict, ValidationFailed
)
from app.core.config import settings
from app.modules.invoices.models import Invoice, InvoiceLineItem, InvoiceStatus
from app.modules.invoices.calculator import compute_totals, due_date_for, sum_line_totals
from app.modules.invoices.sequence import InvoiceSequenceAllocator
from app.modules.notifications.dispatcher import NotificationDispatcher, INVOICE_GENERATED, PAYMENT_CONFIRMED
from app.modules.orders.models import Order, OrderStatus

logger = logging.getLogger(__name__)

# Estados desde los que una factura todavía puede cobrarse o anularse
OPEN_STATUSES = (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)


def invoice_generated_payload(invoice: Invoice) -> dict:
    return {
        "invoice_id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "order_id": invoice.order_id,
        "total_amount": invoice.total_amount,
        "due_date": invoice.due_date,
    }


class InvoiceService:
    """Servicio de facturación: una factura por orden completada"""

    def __init__(self, db: Session, notifier: Optional[NotificationDispatcher] = None):
        self.db = db
        self.notifier = notifier

    def _find_by_order(self, order_id: UUID) -> Optional[Invoice]:
        return self.db.query(Invoice).filter(Invoice.order_id == order_id).first()

    def _lock_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = (
            self.db.query(Invoice)
            .filter(Invoice.id == invoice_id)
            .with_for_update()
            .first()
        )
        if not invoice:
            raise NotFound("Invoice", invoice_id)
        return invoice

    def generate_for_order(self, order: Order, issue_date: Optional[date] = None) -> Tuple[Invoice, bool]:
        """
        Generar la factura de una orden. Idempotente por order_id.

        Runs inside the caller's transaction and never commits: the order row is
        expected to be locked by the caller.

        Returns:
            (invoice, created); created is False when the order already had one
        """
        try:
            return self._create_invoice(order, issue_date or date.today()), True
        except DuplicateInvoice as dup:
            logger.warning(f"Order {order.order_number} already invoiced, returning invoice {dup.invoice_id}")
            return self.db.get(Invoice, dup.invoice_id), False

    def _create_invoice(self, order: Order, issue_date: date) -> Invoice:
        existing = self._find_by_order(order.id)
        if existing:
            raise DuplicateInvoice(order.id, existing.id)

        if not order.items:
            raise ValidationFailed("Cannot invoice an order without items", order_id=order.id)

        customer = order.customer
        subtotal = sum_line_totals(item.line_total for item in order.items)
        totals = compute_totals(subtotal, settings.DEFAULT_VAT_RATE, customer.vat_exempt)

        try:
            with self.db.begin_nested():
                invoice_number = InvoiceSequenceAllocator(self.db).next_number(
                    customer.customer_code, customer.id, issue_date.year
                )
                invoice = Invoice(
                    customer_id=order.customer_id,
                    order_id=order.id,
                    invoice_number=invoice_number,
                    status=InvoiceStatus.PENDING,
                    issue_date=issue_date,
                    due_date=due_date_for(issue_date),
                    subtotal=totals.subtotal,
                    vat_rate=settings.DEFAULT_VAT_RATE,
                    vat_exempt=customer.vat_exempt,
                    tax_amount=totals.tax_amount,
                    total_amount=totals.total_amount,
                    currency=settings.CURRENCY_CODE,
                    customer_vatin=customer.vatin,
                )
                for item in order.items:
                    inventory_item = item.inventory_item
                    invoice.line_items.append(InvoiceLineItem(
                        order_item_id=item.id,
                        description=f"{inventory_item.product_name} ({inventory_item.sku})",
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        line_total=item.line_total,
                    ))
                self.db.add(invoice)
                self.db.flush()
        except IntegrityError:
            # Otra transacción facturó la misma orden primero
            existing = self._find_by_order(order.id)
            if existing is None:
                raise TransientConflict("Invoice generation conflicted with a concurrent write")
            raise DuplicateInvoice(order.id, existing.id)

        logger.info(
            f"Invoice {invoice.invoice_number} generated for order {order.order_number}: "
            f"subtotal {totals.subtotal}, tax {totals.tax_amount}, total {totals.total_amount}"
        )
        return invoice

    def ensure_invoice_for_order(self, order_id: UUID) -> Invoice:
        """Generar (o devolver) la factura de una orden completada"""
        try:
            order = (
                self.db.query(Order)
                .filter(Order.id == order_id)
                .with_for_update()
                .first()
            )
            if not order:
                raise NotFound("Order", order_id)
            if order.status != OrderStatus.COMPLETED:
                raise ValidationFailed(
                    "Only completed orders can be invoiced",
                    order_id=order.id,
                    status=order.status,
                )

            invoice, created = self.generate_for_order(order)
            self.db.commit()
            self.db.refresh(invoice)

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error generating invoice for order {order_id}: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error generating invoice: {str(e)}"
            )

        if created:
            self.notify_generated(invoice, order.created_by)
        return invoice

    def notify_generated(self, invoice: Invoice, user_id: Optional[UUID]) -> None:
        if self.notifier is not None:
            self.notifier.notify(user_id, INVOICE_GENERATED, invoice_generated_payload(invoice))

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = (
            self.db.query(Invoice)
            .options(selectinload(Invoice.line_items))
            .filter(Invoice.id == invoice_id)
            .first()
        )
        if not invoice:
            raise NotFound("Invoice", invoice_id)
        return invoice

    def list_invoices(
        self,
        customer_id: Optional[UUID] = None,
        status_filter: Optional[InvoiceStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> dict:
        """Listar facturas, más recientes primero"""
        query = self.db.query(Invoice)
        if customer_id:
            query = query.filter(Invoice.customer_id == customer_id)
        if status_filter:
            query = query.filter(Invoice.status == status_filter)

        total = query.count()
        invoices = (
            query.order_by(desc(Invoice.created_at), desc(Invoice.invoice_number))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {"invoices": invoices, "total": total, "limit": limit, "offset": offset}

    def get_invoice_for_order(self, order_id: UUID) -> Invoice:
        invoice = (
            self.db.query(Invoice)
            .options(selectinload(Invoice.line_items))
            .filter(Invoice.order_id == order_id)
            .first()
        )
        if not invoice:
            raise NotFound("Invoice", order_id)
        return invoice

    def mark_invoice_paid(self, invoice_id: UUID, paid_at: Optional[datetime] = None) -> Invoice:
        """
        Registrar el pago confirmado por el subsistema de pagos.

        Marking an already paid invoice again is a no-op.
        """
        try:
            invoice = self._lock_invoice(invoice_id)

            if invoice.status == InvoiceStatus.PAID:
                logger.info(f"Invoice {invoice.invoice_number} already paid, nothing to do")
                self.db.rollback()
                return self.get_invoice(invoice_id)

            if invoice.status not in OPEN_STATUSES:
                raise InvalidTransition(invoice.status, InvoiceStatus.PAID, resource="invoice")

            old_status = invoice.status
            invoice.status = InvoiceStatus.PAID
            invoice.paid_at = paid_at or datetime.now(timezone.utc)
            recipient = invoice.order.created_by

            self.db.commit()
            self.db.refresh(invoice)
            logger.info(f"Invoice {invoice.invoice_number} status changed from {old_status.value} to paid")

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error marking invoice {invoice_id} as paid: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error marking invoice as paid: {str(e)}"
            )

        if self.notifier is not None:
            self.notifier.notify(recipient, PAYMENT_CONFIRMED, {
                "invoice_id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "order_id": invoice.order_id,
                "total_amount": invoice.total_amount,
                "paid_at": invoice.paid_at,
            })
        return invoice

    def cancel_invoice(self, invoice_id: UUID, reason: str) -> Invoice:
        """
        Anular factura.

        Args:
            invoice_id: ID de la factura
            reason: Motivo de la anulación, se agrega a las notas

        Returns:
            Invoice anulada
        """
        try:
            invoice = self._lock_invoice(invoice_id)

            if invoice.status not in OPEN_STATUSES:
                raise InvalidTransition(invoice.status, InvoiceStatus.CANCELLED, resource="invoice")

            old_status = invoice.status
            invoice.status = InvoiceStatus.CANCELLED
            if invoice.notes:
                invoice.notes += f"\n\n[CANCELLED] {reason}"
            else:
                invoice.notes = f"[CANCELLED] {reason}"

            self.db.commit()
            self.db.refresh(invoice)
            logger.info(f"Invoice {invoice.invoice_number} status changed from {old_status.value} to cancelled - Reason: {reason}")
            return invoice

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error canceling invoice {invoice_id}: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error canceling invoice: {str(e)}"
            )

    def mark_overdue_invoices(self, as_of: Optional[date] = None) -> int:
        """Pasar a overdue las facturas pendientes con fecha de vencimiento anterior a as_of"""
        as_of = as_of or date.today()
        try:
            invoices: List[Invoice] = (
                self.db.query(Invoice)
                .filter(Invoice.status == InvoiceStatus.PENDING, Invoice.due_date < as_of)
                .order_by(Invoice.id)
                .with_for_update()
                .all()
            )
            for invoice in invoices:
                invoice.status = InvoiceStatus.OVERDUE
                logger.info(f"Invoice {invoice.invoice_number} overdue since {invoice.due_date}")

            self.db.commit()
            return len(invoices)

        except Exception as e:
            self.db.rollback()
            logger.error(f"Error marking overdue invoices: {str(e)}", exc_info=True)
            raise
