from app.database.database import Base
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Enum, JSON, Uuid, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from uuid import uuid4
from app.common.mixins import BaseMixin
import enum


class InventoryStatus(enum.Enum):
    AVAILABLE = "available"
    LOW = "low"
    OUT_OF_STOCK = "out_of_stock"


def derive_inventory_status(quantity: int, minimum_quantity: int) -> InventoryStatus:
    """Status is a pure function of (quantity, minimum threshold)."""
    if quantity <= 0:
        return InventoryStatus.OUT_OF_STOCK
    if quantity <= (minimum_quantity or 0):
        return InventoryStatus.LOW
    return InventoryStatus.AVAILABLE


class InventoryItem(Base, BaseMixin):
    __tablename__ = "inventory_items"

    sku = Column(String(50), nullable=False)
    product_name = Column(String(200), nullable=False)
    unit = Column(String(20), nullable=False, default="pcs")

    quantity = Column(Integer, nullable=False, default=0)  # On hand
    consumed_quantity = Column(Integer, nullable=False, default=0)  # Cumulative, only grows
    minimum_quantity = Column(Integer, nullable=False, default=0)  # Low-stock threshold
    unit_price = Column(Numeric(15, 3), nullable=False, default=0)
    status = Column(Enum(InventoryStatus), nullable=False, default=InventoryStatus.AVAILABLE)

    # Relationships
    customer = relationship("Customer", back_populates="inventory_items")
    audit_entries = relationship("InventoryAuditLog", back_populates="inventory_item", order_by="InventoryAuditLog.created_at")

    __table_args__ = (
        UniqueConstraint("customer_id", "sku", name="uq_inventory_customer_sku"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        CheckConstraint("consumed_quantity >= 0", name="ck_inventory_consumed_non_negative"),
    )

    def refresh_status(self) -> InventoryStatus:
        self.status = derive_inventory_status(self.quantity, self.minimum_quantity)
        return self.status


class InventoryAuditLog(Base):
    """Append-only trail of ledger mutations with before/after snapshots."""
    __tablename__ = "inventory_audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    inventory_id = Column(Uuid(as_uuid=True), ForeignKey("inventory_items.id"), nullable=False, index=True)
    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id"), nullable=True, index=True)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=False)

    action = Column(String(50), nullable=False)  # INVENTORY_DEDUCTED
    quantity_delta = Column(Integer, nullable=False)
    old_data = Column(JSON, nullable=False)
    new_data = Column(JSON, nullable=False)
    actor_id = Column(Uuid(as_uuid=True), nullable=True)  # NULL when the system acted
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    inventory_item = relationship("InventoryItem", back_populates="audit_entries")
