from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.modules.orders.models import OrderStatus, ApprovalDecisionType


class OrderItemCreate(BaseModel):
    inventory_id: UUID
    quantity: int = Field(..., gt=0, description="Units requested from this inventory row")


class OrderCreate(BaseModel):
    customer_id: Optional[UUID] = Field(None, description="Required for staff; customers order for their own account")
    items: List[OrderItemCreate] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)


class OrderTransitionRequest(BaseModel):
    target_status: OrderStatus
    notes: Optional[str] = Field(None, max_length=1000)


class OrderItemOut(BaseModel):
    id: UUID
    inventory_id: UUID
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class OrderApprovalOut(BaseModel):
    id: UUID
    decision: ApprovalDecisionType
    approver_id: Optional[UUID] = None
    is_system: bool
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: UUID
    customer_id: UUID
    order_number: str
    status: OrderStatus
    total_amount: Decimal
    notes: Optional[str] = None
    delivered_at: Optional[datetime] = None
    delivery_notes: Optional[str] = None
    delivery_confirmed: bool
    delivery_confirmed_at: Optional[datetime] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderDetail(OrderOut):
    items: List[OrderItemOut] = []
    approvals: List[OrderApprovalOut] = []


class OrderList(BaseModel):
    orders: List[OrderOut]
    total: int
    limit: int
    offset: int
