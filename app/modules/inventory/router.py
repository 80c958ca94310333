from fastapi import APIRouter, Depends, Query
from uuid import UUID
from sqlalchemy.orm import Session

from app.modules.auth.dependencies import AuthDependencies, ensure_customer_access
from app.modules.auth.schemas import AuthContext
from app.dependencies.dbDependecies import get_db
from app.modules.inventory.service import InventoryService
from app.modules.inventory.schemas import InventoryItemOut, InventoryAuditLogList

inventory_router = APIRouter(prefix="/inventory", tags=["Inventory"])


@inventory_router.get("/{inventory_id}", response_model=InventoryItemOut)
def get_inventory_item(
    inventory_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Get one inventory row with its current on-hand and consumed quantities."""
    service = InventoryService(db)
    item = service.get_item(inventory_id)
    ensure_customer_access(auth_context, item.customer_id)
    return item


@inventory_router.get("/{inventory_id}/audit-log", response_model=InventoryAuditLogList)
def get_inventory_audit_log(
    inventory_id: UUID,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_staff())
):
    """Get the deduction trail of an inventory row."""
    service = InventoryService(db)
    return service.get_audit_log(inventory_id, limit, offset)
