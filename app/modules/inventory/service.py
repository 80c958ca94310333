from typing import List
from uuid import UUID
from sqlalchemy.orm import Session

from app.common.exceptions import NotFound
from app.modules.inventory.models import InventoryItem, InventoryAuditLog


class InventoryService:
    """Read side of the inventory ledger."""

    def __init__(self, db: Session):
        self.db = db

    def get_item(self, inventory_id: UUID) -> InventoryItem:
        item = self.db.query(InventoryItem).filter(InventoryItem.id == inventory_id).first()
        if not item:
            raise NotFound("Inventory item", inventory_id)
        return item

    def get_audit_log(self, inventory_id: UUID, limit: int = 100, offset: int = 0) -> dict:
        """Audit entries for one inventory row, newest first."""
        self.get_item(inventory_id)
        query = self.db.query(InventoryAuditLog).filter(
            InventoryAuditLog.inventory_id == inventory_id
        )
        total = query.count()
        entries: List[InventoryAuditLog] = (
            query.order_by(InventoryAuditLog.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {"entries": entries, "total": total}
