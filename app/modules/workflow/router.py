from fastapi import APIRouter, Depends
from uuid import UUID

from app.dependencies.dbDependecies import db_dependency
from app.modules.auth.dependencies import AuthDependencies, ensure_customer_access
from app.modules.auth.schemas import AuthContext
from app.modules.workflow.service import WorkflowService
from app.modules.workflow.schemas import WorkflowSettingsOut, WorkflowSettingsUpdate

workflow_router = APIRouter(prefix="/workflow-settings", tags=["Workflow"])


@workflow_router.get("/{customer_id}", response_model=WorkflowSettingsOut)
def get_workflow_settings(
    customer_id: UUID,
    db: db_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Effective approval settings for a customer (falls back to the global row)."""
    ensure_customer_access(auth_context, customer_id)
    return WorkflowService(db).get_settings(customer_id)


@workflow_router.put("/{customer_id}", response_model=WorkflowSettingsOut)
def update_workflow_settings(
    customer_id: UUID,
    data: WorkflowSettingsUpdate,
    db: db_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["admin"]))
):
    """Create or replace the customer's own approval settings."""
    return WorkflowService(db).update_settings(customer_id, data)
