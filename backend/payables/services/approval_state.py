"""ApprovalStep state machine.

    PENDING ──approve──▶ APPROVED
       │  └──reject───▶ REJECTED
       │  └──(other step rejected)──▶ SKIPPED
       └──escalate──▶ ESCALATED ──approve/reject/skip──▶ ...

Every status change is a single guarded UPDATE that only matches while the
row is still in one of the expected statuses. Zero matched rows means another
writer got there first and raises ConflictError; nothing is retried.
"""
import enum
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from payables.core.exceptions import ConflictError
from payables.models.approval import ApprovalStatus, ApprovalStep

logger = logging.getLogger(__name__)

# Statuses a step can still be decided from.
UNDECIDED = frozenset({ApprovalStatus.PENDING, ApprovalStatus.ESCALATED})

COMMENT_SEPARATOR = " | "


class WorkflowStatus(str, enum.Enum):
    NOT_REQUIRED = "NOT_REQUIRED"
    IN_PROGRESS = "IN_PROGRESS"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# ─── Guarded transitions ───

def transition(
    db: Session,
    step: ApprovalStep,
    expected: frozenset | set,
    *criteria,
    **values,
) -> ApprovalStep:
    """Apply ``values`` to ``step`` only if its stored status is in ``expected``.

    Extra SQL ``criteria`` narrow the guard further (e.g. escalation_date IS NULL).
    Runs in the current transaction; does not commit.

    Raises:
        ConflictError: the row no longer matches the guard.
    """
    stmt = (
        update(ApprovalStep)
        .where(
            ApprovalStep.id == step.id,
            ApprovalStep.status.in_([ApprovalStatus(s).value for s in expected]),
            *criteria,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount == 0:
        db.refresh(step)
        raise ConflictError(
            step.id,
            step.status,
            f"Approval step {step.id} is {step.status}; expected one of "
            f"{sorted(ApprovalStatus(s).value for s in expected)}.",
        )
    db.refresh(step)
    logger.debug("Approval step %s → %s", step.id, step.status)
    return step


def claim_notification(db: Session, step: ApprovalStep) -> bool:
    """Flip notification_sent False → True; False if someone already did."""
    result = db.execute(
        update(ApprovalStep)
        .where(ApprovalStep.id == step.id, ApprovalStep.notification_sent.is_(False))
        .values(notification_sent=True)
        .execution_options(synchronize_session=False)
    )
    db.refresh(step, ["notification_sent"])
    return result.rowcount == 1


def release_notification(db: Session, step: ApprovalStep) -> None:
    """Undo a claim after delivery failed so a later attempt can resend."""
    db.execute(
        update(ApprovalStep)
        .where(ApprovalStep.id == step.id)
        .values(notification_sent=False)
        .execution_options(synchronize_session=False)
    )
    db.refresh(step, ["notification_sent"])


# ─── Derivations over the ordered step list ───

def is_undecided(step: ApprovalStep) -> bool:
    return ApprovalStatus(step.status) in UNDECIDED


def next_undecided_step(steps: list[ApprovalStep]) -> ApprovalStep | None:
    """First step, in sequence order, still waiting for a decision."""
    for step in sorted(steps, key=lambda s: s.sequence_order):
        if is_undecided(step):
            return step
    return None


def derive_workflow_status(steps: list[ApprovalStep]) -> WorkflowStatus:
    if not steps:
        return WorkflowStatus.NOT_REQUIRED
    statuses = {ApprovalStatus(s.status) for s in steps}
    if ApprovalStatus.REJECTED in statuses:
        return WorkflowStatus.REJECTED
    if statuses == {ApprovalStatus.APPROVED}:
        return WorkflowStatus.APPROVED
    return WorkflowStatus.IN_PROGRESS


def append_comment(existing: str | None, new: str | None) -> str | None:
    """Join comments with ' | ', keeping the earlier trail."""
    parts = [c for c in (existing, new) if c]
    return COMMENT_SEPARATOR.join(parts) if parts else None
