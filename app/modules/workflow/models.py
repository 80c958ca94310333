from app.database.database import Base
from sqlalchemy import Column, Boolean, ForeignKey, Numeric, Uuid
from uuid import uuid4
from app.common.mixins import TimestampMixin


class WorkflowSettings(Base, TimestampMixin):
    """Approval workflow configuration. customer_id NULL is the global default row."""
    __tablename__ = "workflow_settings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=True, unique=True)
    require_approval = Column(Boolean, nullable=False, default=True)
    auto_approve_threshold = Column(Numeric(15, 3), nullable=True)
    default_approver_id = Column(Uuid(as_uuid=True), nullable=True)
