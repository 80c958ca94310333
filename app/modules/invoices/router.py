from fastapi import APIRouter, Depends, Query
from typing import Optional
from uuid import UUID

from app.dependencies.dbDependecies import db_dependency
from app.modules.auth.dependencies import AuthDependencies, ensure_customer_access
from app.modules.auth.schemas import AuthContext, Role
from app.modules.invoices.models import InvoiceStatus
from app.modules.invoices.service import InvoiceService
from app.modules.invoices.schemas import (
    InvoiceDetail, InvoiceList, InvoiceOut, MarkPaidRequest, InvoiceCancelRequest, OverdueSweepResult
)
from app.modules.notifications.dispatcher import NotificationDispatcher, get_notifier
from datetime import date

# Router principal del módulo de facturas
invoices_router = APIRouter(prefix="/invoices", tags=["Invoices"])


@invoices_router.get("", response_model=InvoiceList)
def list_invoices(
    db: db_dependency,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    status: Optional[InvoiceStatus] = Query(None, description="Estado de la factura"),
    customer_id: Optional[UUID] = Query(None, description="Filtrar por cliente (solo personal)"),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Listar facturas; un cliente solo ve las suyas"""
    if auth_context.role == Role.CUSTOMER:
        customer_id = auth_context.customer_id
    return InvoiceService(db).list_invoices(customer_id, status, limit, offset)


@invoices_router.post("/overdue-sweep", response_model=OverdueSweepResult)
def run_overdue_sweep(
    db: db_dependency,
    as_of: Optional[date] = None,
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["admin", "system"]))
):
    """
    Marcar como vencidas las facturas pendientes cuya fecha de vencimiento ya pasó.

    The scheduled task runs the same sweep daily.
    """
    as_of = as_of or date.today()
    marked = InvoiceService(db).mark_overdue_invoices(as_of)
    return OverdueSweepResult(as_of=as_of, marked_overdue=marked)


@invoices_router.get("/{invoice_id}", response_model=InvoiceDetail)
def get_invoice(
    invoice_id: UUID,
    db: db_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Obtener factura con sus líneas"""
    invoice = InvoiceService(db).get_invoice(invoice_id)
    ensure_customer_access(auth_context, invoice.customer_id)
    return invoice


@invoices_router.post("/{invoice_id}/mark-paid", response_model=InvoiceOut)
def mark_invoice_paid(
    invoice_id: UUID,
    db: db_dependency,
    payment: Optional[MarkPaidRequest] = None,
    notifier: NotificationDispatcher = Depends(get_notifier),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["admin", "system"]))
):
    """
    Registrar el pago de una factura.

    Called by the payment subsystem once the payment is confirmed. Repeating the
    call for a paid invoice returns it unchanged.
    """
    service = InvoiceService(db, notifier)
    return service.mark_invoice_paid(invoice_id, payment.paid_at if payment else None)


@invoices_router.post("/{invoice_id}/cancel", response_model=InvoiceOut)
def cancel_invoice(
    invoice_id: UUID,
    cancel_data: InvoiceCancelRequest,
    db: db_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["admin"]))
):
    """Anular una factura pendiente o vencida"""
    return InvoiceService(db).cancel_invoice(invoice_id, cancel_data.reason)
