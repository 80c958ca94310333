"""
Inventory ledger: all-or-nothing stock deduction for approved orders.

The ledger never commits. It runs inside the caller's transaction so that the
order status write and the stock deduction persist together or not at all.
"""
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.common.exceptions import InsufficientStock, ValidationFailed
from app.modules.inventory.models import InventoryItem, InventoryAuditLog, InventoryStatus

logger = logging.getLogger(__name__)

DEDUCTION_ACTION = "INVENTORY_DEDUCTED"


class InventoryLedger:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _aggregate(lines: Iterable[Tuple[UUID, int]]) -> Dict[UUID, int]:
        requested: Dict[UUID, int] = OrderedDict()
        for inventory_id, quantity in lines:
            if quantity is None or quantity <= 0:
                raise ValidationFailed("Quantities must be greater than zero", inventory_id=inventory_id)
            requested[inventory_id] = requested.get(inventory_id, 0) + int(quantity)
        return requested

    @staticmethod
    def _snapshot(item: InventoryItem) -> dict:
        return {
            "quantity": item.quantity,
            "consumed_quantity": item.consumed_quantity,
            "status": item.status.value if item.status else None,
        }

    def check_availability(
        self,
        requested: Dict[UUID, int],
        customer_id: Optional[UUID] = None,
    ) -> Dict[UUID, InventoryItem]:
        """
        Lock every touched row and verify each line before anything is deducted.

        Rows are locked in id order so two approvals sharing items cannot deadlock.
        """
        items = (
            self.db.query(InventoryItem)
            .filter(InventoryItem.id.in_(list(requested.keys())))
            .order_by(InventoryItem.id)
            .with_for_update()
            .all()
        )
        by_id = {item.id: item for item in items}

        for inventory_id, quantity in requested.items():
            item = by_id.get(inventory_id)
            if item is None:
                raise InsufficientStock(sku=None, available=0, requested=quantity, inventory_id=inventory_id)
            if customer_id is not None and item.customer_id != customer_id:
                raise ValidationFailed(
                    "Inventory item does not belong to the order's customer",
                    inventory_id=inventory_id,
                )
            if item.status == InventoryStatus.OUT_OF_STOCK or item.quantity < quantity:
                raise InsufficientStock(
                    sku=item.sku,
                    available=item.quantity,
                    requested=quantity,
                    inventory_id=item.id,
                )
        return by_id

    def reserve_and_deduct(
        self,
        lines: Iterable[Tuple[UUID, int]],
        order_id: Optional[UUID] = None,
        actor_id: Optional[UUID] = None,
        customer_id: Optional[UUID] = None,
    ) -> List[InventoryAuditLog]:
        """
        Deduct every line or none of them.

        Args:
            lines: (inventory_id, quantity) pairs; repeated ids are summed
            order_id: order that triggered the deduction, stamped on the audit trail
            actor_id: user acting, None for system approvals
            customer_id: when given, every row must belong to this customer

        Returns:
            The audit entries written, one per inventory row

        Raises:
            InsufficientStock: a line is missing, out of stock or short
        """
        requested = self._aggregate(lines)
        if not requested:
            raise ValidationFailed("At least one line is required to deduct stock")

        items = self.check_availability(requested, customer_id)
        entries = []

        for inventory_id in sorted(requested):
            item = items[inventory_id]
            quantity = requested[inventory_id]
            before = self._snapshot(item)

            # Conditional decrement: never lets a concurrent writer push quantity below zero
            result = self.db.execute(
                update(InventoryItem)
                .where(InventoryItem.id == inventory_id, InventoryItem.quantity >= quantity)
                .values(
                    quantity=InventoryItem.quantity - quantity,
                    consumed_quantity=InventoryItem.consumed_quantity + quantity,
                )
                .execution_options(synchronize_session=False)
            )
            self.db.refresh(item)
            if result.rowcount != 1:
                logger.warning(f"Conditional deduction lost a race for {item.sku}: available {item.quantity}, requested {quantity}")
                raise InsufficientStock(
                    sku=item.sku,
                    available=item.quantity,
                    requested=quantity,
                    inventory_id=item.id,
                )

            item.refresh_status()
            after = self._snapshot(item)

            entry = InventoryAuditLog(
                inventory_id=item.id,
                order_id=order_id,
                customer_id=item.customer_id,
                action=DEDUCTION_ACTION,
                quantity_delta=-quantity,
                old_data=before,
                new_data=after,
                actor_id=actor_id,
            )
            self.db.add(entry)
            entries.append(entry)
            logger.info(f"Deducted {quantity} of {item.sku}: {before['quantity']} -> {after['quantity']} (order {order_id})")

        self.db.flush()
        return entries
