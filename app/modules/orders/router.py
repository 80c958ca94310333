from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional
from uuid import UUID

from app.common.exceptions import ValidationFailed
from app.dependencies.dbDependecies import db_dependency
from app.modules.auth.dependencies import AuthDependencies, ensure_customer_access
from app.modules.auth.schemas import AuthContext, Role
from app.modules.invoices.schemas import InvoiceDetail
from app.modules.invoices.service import InvoiceService
from app.modules.notifications.dispatcher import NotificationDispatcher, get_notifier
from app.modules.orders.models import OrderStatus
from app.modules.orders.schemas import OrderCreate, OrderDetail, OrderList, OrderTransitionRequest
from app.modules.orders.service import OrderService

orders_router = APIRouter(prefix="/orders", tags=["Orders"])


@orders_router.post("", response_model=OrderDetail, status_code=status.HTTP_201_CREATED)
def create_order(
    order_data: OrderCreate,
    db: db_dependency,
    notifier: NotificationDispatcher = Depends(get_notifier),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """
    Crear una orden.

    Customers order against their own account; staff must name the customer.
    The order is approved immediately when the customer's workflow settings allow it.
    """
    if auth_context.role == Role.CUSTOMER:
        if order_data.customer_id and order_data.customer_id != auth_context.customer_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Customers can only place orders for their own account"
            )
        customer_id = auth_context.customer_id
    else:
        if order_data.customer_id is None:
            raise ValidationFailed("customer_id is required")
        customer_id = order_data.customer_id

    service = OrderService(db, notifier)
    order = service.create_order(customer_id, order_data.items, order_data.notes, auth_context)
    return service.get_order(order.id)


@orders_router.get("", response_model=OrderList)
def list_orders(
    db: db_dependency,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    status: Optional[OrderStatus] = Query(None, description="Estado de la orden"),
    customer_id: Optional[UUID] = Query(None, description="Filtrar por cliente (solo personal)"),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """
    Listar órdenes, más recientes primero.

    Customer users only ever see their own account's orders.
    """
    if auth_context.role == Role.CUSTOMER:
        customer_id = auth_context.customer_id
    return OrderService(db).list_orders(customer_id, status, limit, offset)


@orders_router.get("/{order_id}", response_model=OrderDetail)
def get_order(
    order_id: UUID,
    db: db_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Obtener orden con sus ítems y el historial de aprobación"""
    order = OrderService(db).get_order(order_id)
    ensure_customer_access(auth_context, order.customer_id)
    return order


@orders_router.post("/{order_id}/transition", response_model=OrderDetail)
def transition_order(
    order_id: UUID,
    transition: OrderTransitionRequest,
    db: db_dependency,
    notifier: NotificationDispatcher = Depends(get_notifier),
    auth_context: AuthContext = Depends(AuthDependencies.require_staff())
):
    """
    Cambiar el estado de la orden.

    Approving deducts stock for every line; completing requires the customer's
    delivery confirmation and generates the invoice.
    """
    service = OrderService(db, notifier)
    service.transition_order(order_id, transition.target_status, auth_context, transition.notes)
    return service.get_order(order_id)


@orders_router.post("/{order_id}/confirm-delivery", response_model=OrderDetail)
def confirm_delivery(
    order_id: UUID,
    db: db_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["customer"]))
):
    """El cliente confirma que recibió la orden"""
    service = OrderService(db)
    service.confirm_delivery(order_id, auth_context)
    return service.get_order(order_id)


@orders_router.get("/{order_id}/invoice", response_model=InvoiceDetail)
def get_order_invoice(
    order_id: UUID,
    db: db_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Obtener la factura generada para la orden"""
    invoice = InvoiceService(db).get_invoice_for_order(order_id)
    ensure_customer_access(auth_context, invoice.customer_id)
    return invoice


@orders_router.post("/{order_id}/invoice", response_model=InvoiceDetail)
def generate_order_invoice(
    order_id: UUID,
    db: db_dependency,
    notifier: NotificationDispatcher = Depends(get_notifier),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["admin"]))
):
    """
    Generar la factura de una orden completada.

    Safe to repeat: an order that already has its invoice gets the same one back.
    """
    service = InvoiceService(db, notifier)
    invoice = service.ensure_invoice_for_order(order_id)
    return service.get_invoice(invoice.id)
