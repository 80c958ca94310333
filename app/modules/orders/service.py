from fastapi import HTTPException, status
from sqlalchemy import desc
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import OperationalError
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4
import logging

from app.common.exceptions import (
    ConfirmationRequired, NotFound, TransientConflict, ValidationFailed
)
from app.modules.auth.schemas import AuthContext, Role
from app.modules.customers.models import Customer
from app.modules.inventory.ledger import InventoryLedger
from app.modules.inventory.models import InventoryItem
from app.modules.invoices.calculator import line_total, sum_line_totals
from app.modules.invoices.service import InvoiceService, invoice_generated_payload
from app.modules.notifications.dispatcher import (
    NotificationDispatcher, APPROVAL_REQUIRED, ORDER_APPROVED, ORDER_REJECTED, INVOICE_GENERATED
)
from app.modules.orders.models import Order, OrderItem, OrderApproval, OrderStatus, ApprovalDecisionType
from app.modules.orders.schemas import OrderItemCreate
from app.modules.orders.state_machine import ensure_transition
from app.modules.workflow.policy import decide_approval
from app.modules.workflow.service import WorkflowService

logger = logging.getLogger(__name__)


def generate_order_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now.strftime('%Y%m%d%H%M%S')}-{uuid4().hex[:4].upper()}"


class OrderService:
    """
    Orquestador del ciclo de vida de la orden.

    Every state change runs in one transaction together with its side effects
    (stock deduction on approval, invoice on completion). Notifications go out
    only after the commit.
    """

    def __init__(self, db: Session, notifier: Optional[NotificationDispatcher] = None):
        self.db = db
        self.notifier = notifier
        self._outbox = []

    def _queue(self, user_id: Optional[UUID], event_type: str, payload: dict) -> None:
        self._outbox.append((user_id, event_type, payload))

    def _flush_outbox(self) -> None:
        outbox, self._outbox = self._outbox, []
        if self.notifier is None:
            return
        for user_id, event_type, payload in outbox:
            self.notifier.notify(user_id, event_type, payload)

    def _lock_order(self, order_id: UUID) -> Order:
        order = (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .with_for_update()
            .first()
        )
        if not order:
            raise NotFound("Order", order_id)
        return order

    def get_order(self, order_id: UUID) -> Order:
        order = (
            self.db.query(Order)
            .options(selectinload(Order.items), selectinload(Order.approvals))
            .filter(Order.id == order_id)
            .first()
        )
        if not order:
            raise NotFound("Order", order_id)
        return order

    def list_orders(
        self,
        customer_id: Optional[UUID] = None,
        status_filter: Optional[OrderStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> dict:
        """Listar órdenes, más recientes primero"""
        query = self.db.query(Order)
        if customer_id:
            query = query.filter(Order.customer_id == customer_id)
        if status_filter:
            query = query.filter(Order.status == status_filter)

        total = query.count()
        orders = (
            query.order_by(desc(Order.created_at), desc(Order.order_number))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {"orders": orders, "total": total, "limit": limit, "offset": offset}

    def _build_items(self, customer_id: UUID, items: List[OrderItemCreate]) -> List[OrderItem]:
        """Validar líneas y capturar precios al momento de la orden"""
        if not items:
            raise ValidationFailed("An order needs at least one item")

        inventory_ids = {item.inventory_id for item in items}
        inventory = {
            row.id: row
            for row in self.db.query(InventoryItem).filter(InventoryItem.id.in_(inventory_ids)).all()
        }

        order_items = []
        for item in items:
            if item.quantity is None or item.quantity <= 0:
                raise ValidationFailed("Quantities must be greater than zero", inventory_id=item.inventory_id)
            row = inventory.get(item.inventory_id)
            if row is None:
                raise NotFound("Inventory item", item.inventory_id)
            if row.customer_id != customer_id:
                raise ValidationFailed(
                    "Inventory item does not belong to the order's customer",
                    inventory_id=item.inventory_id,
                )
            order_items.append(OrderItem(
                customer_id=customer_id,
                inventory_id=row.id,
                quantity=item.quantity,
                unit_price=row.unit_price,
                line_total=line_total(item.quantity, row.unit_price),
            ))
        return order_items

    def _approve(
        self,
        order: Order,
        approver_id: Optional[UUID],
        notes: Optional[str],
        is_system: bool = False,
    ) -> None:
        """Status write, stock deduction and approval record; the caller commits."""
        order.status = OrderStatus.APPROVED
        self.db.flush()

        InventoryLedger(self.db).reserve_and_deduct(
            [(item.inventory_id, item.quantity) for item in order.items],
            order_id=order.id,
            actor_id=approver_id,
            customer_id=order.customer_id,
        )
        self.db.add(OrderApproval(
            order_id=order.id,
            decision=ApprovalDecisionType.APPROVED,
            approver_id=approver_id,
            is_system=is_system,
            notes=notes,
        ))
        self._queue(order.created_by, ORDER_APPROVED, {
            "order_id": order.id,
            "order_number": order.order_number,
            "total_amount": order.total_amount,
            "auto_approved": is_system,
        })

    def _reject(self, order: Order, approver_id: UUID, notes: Optional[str]) -> None:
        order.status = OrderStatus.REJECTED
        self.db.add(OrderApproval(
            order_id=order.id,
            decision=ApprovalDecisionType.REJECTED,
            approver_id=approver_id,
            is_system=False,
            notes=notes,
        ))
        self._queue(order.created_by, ORDER_REJECTED, {
            "order_id": order.id,
            "order_number": order.order_number,
            "reason": notes,
        })

    def _complete(self, order: Order) -> None:
        if not order.delivery_confirmed:
            raise ConfirmationRequired(order.id)

        order.status = OrderStatus.COMPLETED
        self.db.flush()

        invoices = InvoiceService(self.db)
        invoice, created = invoices.generate_for_order(order)
        if created:
            self._queue(order.created_by, INVOICE_GENERATED, invoice_generated_payload(invoice))

    def create_order(
        self,
        customer_id: UUID,
        items: List[OrderItemCreate],
        notes: Optional[str],
        actor: AuthContext,
    ) -> Order:
        """
        Crear una orden y aplicar la política de aprobación.

        When the customer's workflow settings let the order skip review it is
        approved in the same transaction, stock included. If that deduction
        fails the whole creation is rolled back.
        """
        try:
            customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
            if not customer:
                raise NotFound("Customer", customer_id)
            if not customer.is_active:
                raise ValidationFailed("Customer account is inactive", customer_id=customer_id)

            order_items = self._build_items(customer_id, items)
            total = sum_line_totals(item.line_total for item in order_items)

            order = Order(
                customer_id=customer_id,
                order_number=generate_order_number(),
                status=OrderStatus.PENDING_APPROVAL,
                total_amount=total,
                notes=notes,
                created_by=actor.user_id,
            )
            order.items = order_items
            self.db.add(order)
            self.db.flush()

            config = WorkflowService(self.db).get_approval_config(customer_id)
            decision = decide_approval(total, config)
            logger.info(f"Order {order.order_number} created for {customer.customer_code}, total {total}: {decision.reason}")

            if decision.auto_approve:
                self._approve(order, approver_id=None, notes=decision.record.notes, is_system=True)
                logger.info(f"Order {order.order_number} status changed from pending_approval to approved")
            elif config.default_approver_id:
                self._queue(config.default_approver_id, APPROVAL_REQUIRED, {
                    "order_id": order.id,
                    "order_number": order.order_number,
                    "customer_code": customer.customer_code,
                    "total_amount": order.total_amount,
                })

            self.db.commit()
            self.db.refresh(order)

        except HTTPException:
            self.db.rollback()
            self._outbox = []
            raise
        except OperationalError as e:
            self.db.rollback()
            self._outbox = []
            logger.warning(f"Lock conflict creating order for customer {customer_id}: {e.__class__.__name__}")
            raise TransientConflict()
        except Exception as e:
            self.db.rollback()
            self._outbox = []
            logger.error(f"Error creating order for customer {customer_id}: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating order: {str(e)}"
            )

        self._flush_outbox()
        return order

    def transition_order(
        self,
        order_id: UUID,
        target_status: OrderStatus,
        actor: AuthContext,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Mover la orden a target_status.

        Args:
            order_id: ID de la orden
            target_status: estado destino, validado contra la tabla de transiciones
            actor: usuario que ejecuta la transición
            notes: motivo de aprobación/rechazo o notas de entrega

        Raises:
            InvalidTransition: the edge is not in the transition table
            ConfirmationRequired: completing before the customer confirmed delivery
            InsufficientStock: approving without enough stock for every line
        """
        try:
            order = self._lock_order(order_id)
            old_status = order.status
            ensure_transition(old_status, target_status)

            if target_status == OrderStatus.APPROVED:
                self._approve(order, approver_id=actor.user_id, notes=notes)
            elif target_status == OrderStatus.REJECTED:
                self._reject(order, approver_id=actor.user_id, notes=notes)
            elif target_status == OrderStatus.DELIVERED:
                order.status = OrderStatus.DELIVERED
                order.delivered_at = datetime.now(timezone.utc)
                order.delivery_notes = notes
            elif target_status == OrderStatus.COMPLETED:
                self._complete(order)
            elif target_status == OrderStatus.CANCELLED:
                order.status = OrderStatus.CANCELLED
                if notes:
                    order.notes = f"{order.notes}\n\n[CANCELLED] {notes}" if order.notes else f"[CANCELLED] {notes}"
            else:
                order.status = target_status

            self.db.commit()
            self.db.refresh(order)
            logger.info(
                f"Order {order.order_number} status changed from {old_status.value} to {target_status.value} "
                f"by {actor.role.value} {actor.user_id}"
            )

        except HTTPException:
            self.db.rollback()
            self._outbox = []
            raise
        except OperationalError as e:
            self.db.rollback()
            self._outbox = []
            logger.warning(f"Lock conflict moving order {order_id} to {target_status.value}: {e.__class__.__name__}")
            raise TransientConflict()
        except Exception as e:
            self.db.rollback()
            self._outbox = []
            logger.error(f"Error moving order {order_id} to {target_status.value}: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating order status: {str(e)}"
            )

        self._flush_outbox()
        return order

    def confirm_delivery(self, order_id: UUID, customer_actor: AuthContext) -> Order:
        """El cliente confirma la recepción; requisito para completar la orden"""
        try:
            order = self._lock_order(order_id)

            if customer_actor.role != Role.CUSTOMER or customer_actor.customer_id != order.customer_id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Only the ordering customer can confirm delivery"
                )
            if order.status != OrderStatus.DELIVERED:
                raise ValidationFailed(
                    "Delivery can only be confirmed for delivered orders",
                    order_id=order.id,
                    status=order.status,
                )
            if order.delivery_confirmed:
                self.db.rollback()
                return self.get_order(order_id)

            order.delivery_confirmed = True
            order.delivery_confirmed_at = datetime.now(timezone.utc)
            order.delivery_confirmed_by = customer_actor.user_id

            self.db.commit()
            self.db.refresh(order)
            logger.info(f"Delivery of order {order.order_number} confirmed by customer user {customer_actor.user_id}")
            return order

        except HTTPException:
            self.db.rollback()
            raise
        except OperationalError as e:
            self.db.rollback()
            logger.warning(f"Lock conflict confirming delivery of order {order_id}: {e.__class__.__name__}")
            raise TransientConflict()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error confirming delivery of order {order_id}: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error confirming delivery: {str(e)}"
            )
