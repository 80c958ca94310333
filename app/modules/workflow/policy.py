"""
Approval policy: decides whether a new order skips manual review.

Pure function over the order amount and an explicitly passed ApprovalConfig;
the order service executes whatever it decides.
"""
from decimal import Decimal

from app.modules.workflow.schemas import ApprovalConfig, ApprovalDecision, ApprovalRecordDraft


def decide_approval(order_total: Decimal, config: ApprovalConfig) -> ApprovalDecision:
    if not config.require_approval:
        notes = "Auto-approved: approval not required per workflow settings"
        return ApprovalDecision(
            auto_approve=True,
            reason="approval_not_required",
            record=ApprovalRecordDraft(notes=notes),
        )

    threshold = config.auto_approve_threshold
    if threshold is not None and Decimal(order_total) <= Decimal(threshold):
        notes = f"Auto-approved: order total {order_total} within threshold {threshold}"
        return ApprovalDecision(
            auto_approve=True,
            reason="within_threshold",
            record=ApprovalRecordDraft(notes=notes),
        )

    return ApprovalDecision(auto_approve=False, reason="manual_review_required")
