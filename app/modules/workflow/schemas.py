from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from uuid import UUID
from decimal import Decimal


class ApprovalConfig(BaseModel):
    """Workflow configuration passed explicitly into the approval policy."""
    model_config = ConfigDict(frozen=True)

    require_approval: bool = True
    auto_approve_threshold: Optional[Decimal] = None
    default_approver_id: Optional[UUID] = None  # Told about orders left for manual review


class ApprovalRecordDraft(BaseModel):
    """Approval record the policy asks the caller to persist."""
    model_config = ConfigDict(frozen=True)

    decision: str = "approved"
    is_system: bool = True
    approver_id: Optional[UUID] = None
    notes: str


class ApprovalDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    auto_approve: bool
    reason: str
    record: Optional[ApprovalRecordDraft] = None


class WorkflowSettingsUpdate(BaseModel):
    require_approval: bool
    auto_approve_threshold: Optional[Decimal] = Field(None, ge=0, decimal_places=3)
    default_approver_id: Optional[UUID] = None


class WorkflowSettingsOut(BaseModel):
    customer_id: Optional[UUID] = None
    require_approval: bool
    auto_approve_threshold: Optional[Decimal] = None
    default_approver_id: Optional[UUID] = None
    is_default: bool = False

    class Config:
        from_attributes = True
