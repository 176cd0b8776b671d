"""Tests for the escalation sweep."""
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import update

from payables.core.exceptions import ConflictError, NotificationError, ValidationError
from payables.db.base import utcnow
from payables.models.approval import ApprovalStep
from payables.services.approval import create_workflow, escalate, get_workflow_steps
from payables.services.escalation import check_escalations, find_escalation_candidates


def _age_steps(db, payable_id, hours: int) -> None:
    """Backdate every step of a payable's workflow."""
    db.execute(
        update(ApprovalStep)
        .where(ApprovalStep.payable_id == payable_id)
        .values(created_at=utcnow() - timedelta(hours=hours))
        .execution_options(synchronize_session=False)
    )
    db.commit()


def test_stale_step_is_escalated(db, make_payable, notify):
    payable = make_payable(amount="5000.00")
    create_workflow(db, payable.id)
    _age_steps(db, payable.id, hours=30)

    stats = check_escalations(db)

    assert stats == {"candidates": 1, "escalated": 1, "skipped": 0, "degraded_notifications": 0}
    step = get_workflow_steps(db, payable.id)[0]
    db.refresh(step)
    assert step.status == "ESCALATED"
    assert step.comments == "Escalated: 24-hour timeout exceeded"
    notify.escalated.assert_called_once()


def test_running_twice_escalates_once(db, make_payable, notify):
    payable = make_payable(amount="5000.00")
    create_workflow(db, payable.id)
    _age_steps(db, payable.id, hours=30)

    first = check_escalations(db)
    second = check_escalations(db)

    assert first["escalated"] == 1
    assert second == {"candidates": 0, "escalated": 0, "skipped": 0, "degraded_notifications": 0}
    notify.escalated.assert_called_once()


def test_fresh_step_is_left_alone(db, make_payable, notify):
    payable = make_payable(amount="5000.00")
    create_workflow(db, payable.id)
    _age_steps(db, payable.id, hours=2)

    stats = check_escalations(db)

    assert stats["candidates"] == 0
    notify.escalated.assert_not_called()


def test_custom_threshold(db, make_payable, notify):
    payable = make_payable(amount="5000.00")
    create_workflow(db, payable.id)
    _age_steps(db, payable.id, hours=5)

    stats = check_escalations(db, threshold_hours=4)

    assert stats["escalated"] == 1
    assert get_workflow_steps(db, payable.id)[0].comments == "Escalated: 4-hour timeout exceeded"


def test_negative_threshold_is_rejected(db):
    with pytest.raises(ValidationError):
        check_escalations(db, threshold_hours=-1)


def test_every_stale_pending_step_is_a_candidate(db, make_payable, notify):
    payable = make_payable(amount="75000.00")
    create_workflow(db, payable.id)
    _age_steps(db, payable.id, hours=48)

    candidates = find_escalation_candidates(db, utcnow() - timedelta(hours=24))

    assert [s.sequence_order for s in candidates] == [1, 2, 3]


def test_candidate_changed_by_another_writer_is_skipped(db, make_payable, notify):
    """The in-memory step still says PENDING; the row itself was escalated."""
    payable = make_payable(amount="5000.00")
    step = create_workflow(db, payable.id).steps[0]
    _age_steps(db, payable.id, hours=30)
    db.execute(
        update(ApprovalStep)
        .where(ApprovalStep.id == step.id)
        .values(status="ESCALATED", escalation_date=utcnow())
        .execution_options(synchronize_session=False)
    )
    assert step.status == "PENDING"

    with pytest.raises(ConflictError):
        escalate(db, step.id, "24-hour timeout exceeded")
    notify.escalated.assert_not_called()


def test_conflict_during_sweep_counts_as_skipped(db, make_payable, notify):
    payable = make_payable(amount="5000.00")
    create_workflow(db, payable.id)
    _age_steps(db, payable.id, hours=30)

    with patch(
        "payables.services.approval.escalate",
        side_effect=ConflictError("x", "ESCALATED", "already escalated"),
    ):
        stats = check_escalations(db)

    assert stats["candidates"] == 1
    assert stats["skipped"] == 1
    assert stats["escalated"] == 0


def test_failed_alert_is_counted_as_degraded(db, make_payable, notify):
    payable = make_payable(amount="5000.00")
    create_workflow(db, payable.id)
    _age_steps(db, payable.id, hours=30)
    notify.escalated.side_effect = NotificationError("approval_escalated", [], "SMTP down")

    stats = check_escalations(db)

    assert stats["escalated"] == 1
    assert stats["degraded_notifications"] == 1


def test_only_the_current_steps_approver_is_alerted(db, make_payable, notify):
    """Stale later steps are escalated too, but their approvers are not told yet."""
    payable = make_payable(amount="75000.00")
    create_workflow(db, payable.id)
    _age_steps(db, payable.id, hours=30)

    stats = check_escalations(db)

    assert stats["escalated"] == 3
    alerts = {c.args[0].sequence_order: c.args[3] for c in notify.escalated.call_args_list}
    assert alerts == {1: True, 2: False, 3: False}
