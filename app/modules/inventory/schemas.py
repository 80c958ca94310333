from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from uuid import UUID
from decimal import Decimal
from datetime import datetime

from app.modules.inventory.models import InventoryStatus


class InventoryItemOut(BaseModel):
    id: UUID
    customer_id: UUID
    sku: str
    product_name: str
    unit: str
    quantity: int
    consumed_quantity: int
    minimum_quantity: int
    unit_price: Decimal
    status: InventoryStatus
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InventoryAuditLogOut(BaseModel):
    id: UUID
    inventory_id: UUID
    order_id: Optional[UUID]
    action: str
    quantity_delta: int
    old_data: Dict[str, Any]
    new_data: Dict[str, Any]
    actor_id: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True


class InventoryAuditLogList(BaseModel):
    entries: List[InventoryAuditLogOut]
    total: int
