from typing import Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.common.exceptions import NotFound
from app.core.config import settings
from app.modules.customers.models import Customer
from app.modules.workflow.models import WorkflowSettings
from app.modules.workflow.schemas import ApprovalConfig, WorkflowSettingsOut, WorkflowSettingsUpdate

logger = logging.getLogger(__name__)


class WorkflowService:
    """Workflow configuration store: customer row, then global row, then defaults."""

    def __init__(self, db: Session):
        self.db = db

    def _find_settings(self, customer_id: Optional[UUID]) -> Optional[WorkflowSettings]:
        row = None
        if customer_id is not None:
            row = self.db.query(WorkflowSettings).filter(
                WorkflowSettings.customer_id == customer_id
            ).first()
        if row is None:
            row = self.db.query(WorkflowSettings).filter(
                WorkflowSettings.customer_id.is_(None)
            ).first()
        return row

    def get_approval_config(self, customer_id: UUID) -> ApprovalConfig:
        row = self._find_settings(customer_id)
        if row is None:
            return ApprovalConfig(
                require_approval=settings.DEFAULT_REQUIRE_APPROVAL,
                auto_approve_threshold=None,
            )
        return ApprovalConfig(
            require_approval=row.require_approval,
            auto_approve_threshold=row.auto_approve_threshold,
            default_approver_id=row.default_approver_id,
        )

    def get_settings(self, customer_id: UUID) -> WorkflowSettingsOut:
        row = self._find_settings(customer_id)
        if row is None:
            return WorkflowSettingsOut(
                customer_id=customer_id,
                require_approval=settings.DEFAULT_REQUIRE_APPROVAL,
                is_default=True,
            )
        return WorkflowSettingsOut(
            customer_id=customer_id,
            require_approval=row.require_approval,
            auto_approve_threshold=row.auto_approve_threshold,
            default_approver_id=row.default_approver_id,
            is_default=row.customer_id is None,
        )

    def update_settings(self, customer_id: UUID, data: WorkflowSettingsUpdate) -> WorkflowSettingsOut:
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise NotFound("Customer", customer_id)

        row = self.db.query(WorkflowSettings).filter(
            WorkflowSettings.customer_id == customer_id
        ).first()
        if row is None:
            row = WorkflowSettings(customer_id=customer_id)
            self.db.add(row)

        row.require_approval = data.require_approval
        row.auto_approve_threshold = data.auto_approve_threshold
        row.default_approver_id = data.default_approver_id

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            f"Workflow settings for customer {customer.customer_code}: "
            f"require_approval={row.require_approval}, threshold={row.auto_approve_threshold}"
        )
        return self.get_settings(customer_id)
