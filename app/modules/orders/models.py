from app.database.database import Base
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Enum, Text, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from uuid import uuid4
from app.common.mixins import BaseMixin, CustomerOwnedMixin, TimestampMixin
import enum


class OrderStatus(enum.Enum):
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class ApprovalDecisionType(enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class Order(Base, BaseMixin):
    __tablename__ = "orders"

    order_number = Column(String(50), nullable=False, unique=True)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING_APPROVAL)
    total_amount = Column(Numeric(15, 3), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # Delivery
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    delivery_notes = Column(Text, nullable=True)
    delivery_confirmed = Column(Boolean, nullable=False, default=False)
    delivery_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    delivery_confirmed_by = Column(Uuid(as_uuid=True), nullable=True)

    created_by = Column(Uuid(as_uuid=True), nullable=True)

    # Relationships
    customer = relationship("Customer", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    approvals = relationship("OrderApproval", back_populates="order", order_by="OrderApproval.created_at")
    invoice = relationship("Invoice", back_populates="order", uselist=False)


class OrderItem(Base, CustomerOwnedMixin, TimestampMixin):
    __tablename__ = "order_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id"), nullable=False, index=True)
    inventory_id = Column(Uuid(as_uuid=True), ForeignKey("inventory_items.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(15, 3), nullable=False)  # Captured at order time
    line_total = Column(Numeric(15, 3), nullable=False)  # quantity * unit_price

    # Relationships
    order = relationship("Order", back_populates="items")
    inventory_item = relationship("InventoryItem")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
    )


class OrderApproval(Base):
    """Append-only approval/rejection record. is_system marks policy auto-approvals."""
    __tablename__ = "order_approvals"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id"), nullable=False, index=True)
    decision = Column(Enum(ApprovalDecisionType), nullable=False)
    approver_id = Column(Uuid(as_uuid=True), nullable=True)
    is_system = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="approvals")
