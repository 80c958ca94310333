from decimal import Decimal

from app.modules.workflow.policy import decide_approval
from app.modules.workflow.schemas import ApprovalConfig


def test_approval_not_required_auto_approves():
    decision = decide_approval(Decimal("5000.000"), ApprovalConfig(require_approval=False))
    assert decision.auto_approve is True
    assert decision.record.is_system is True
    assert decision.record.decision == "approved"
    assert decision.record.notes.startswith("Auto-approved:")


def test_threshold_is_inclusive():
    config = ApprovalConfig(require_approval=True, auto_approve_threshold=Decimal("100.000"))

    at_threshold = decide_approval(Decimal("100.000"), config)
    assert at_threshold.auto_approve is True
    assert at_threshold.record.notes.startswith("Auto-approved:")

    above = decide_approval(Decimal("100.001"), config)
    assert above.auto_approve is False
    assert above.record is None


def test_no_threshold_requires_manual_review():
    decision = decide_approval(Decimal("0.001"), ApprovalConfig(require_approval=True))
    assert decision.auto_approve is False
    assert decision.reason == "manual_review_required"


def test_default_config_requires_approval():
    decision = decide_approval(Decimal("1.000"), ApprovalConfig())
    assert decision.auto_approve is False
