"""Approval workflow engine.

Builds the sequential approval chain for a payable, applies approver
decisions, and escalates stalled steps. All functions accept a sync
SQLAlchemy Session and are safe to call from Celery tasks.

State changes are committed before any notification goes out; a failed
notification is reported as a DeliveryDegraded warning on the result and
never undoes the transition.
"""
import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payables.core.exceptions import (
    AuthorizationError,
    ConflictError,
    DeliveryDegraded,
    NotFoundError,
    NotificationError,
    ValidationError,
)
from payables.db.base import utcnow
from payables.models.approval import ApprovalStatus, ApprovalStep
from payables.models.payable import Payable, PayableApprovalStatus
from payables.rules.approval_matrix import (
    ApprovalLevel,
    PaymentCategory,
    PaymentPriority,
    RiskLevel,
    build_approval_chain,
    resolve_approval_level,
)
from payables.services import audit as audit_svc
from payables.services import directory as directory_svc
from payables.services import notifications as notify_svc
from payables.services import payables as payables_svc
from payables.services import supplier_risk as supplier_svc
from payables.services.approval_state import (
    UNDECIDED,
    WorkflowStatus,
    append_comment,
    claim_notification,
    derive_workflow_status,
    next_undecided_step,
    release_notification,
    transition,
)

logger = logging.getLogger(__name__)


# ─── Result dataclasses ───

@dataclass
class WorkflowResult:
    payable_id: uuid.UUID
    required_level: ApprovalLevel
    steps: list[ApprovalStep] = field(default_factory=list)
    delivery_warnings: list[DeliveryDegraded] = field(default_factory=list)

    @property
    def auto_approved(self) -> bool:
        return not self.steps


@dataclass
class DecisionResult:
    step: ApprovalStep
    workflow_status: WorkflowStatus
    next_step: ApprovalStep | None = None
    skipped_steps: list[ApprovalStep] = field(default_factory=list)
    delivery_warnings: list[DeliveryDegraded] = field(default_factory=list)


@dataclass
class EscalationResult:
    step: ApprovalStep
    delivery_warnings: list[DeliveryDegraded] = field(default_factory=list)


# ─── Internal helpers ───

def _coerce(enum_cls: type[enum.Enum], value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid {field_name} '{value}'.", field=field_name) from exc


def _get_step(db: Session, step_id: uuid.UUID) -> ApprovalStep:
    step = db.execute(
        select(ApprovalStep).where(ApprovalStep.id == step_id)
    ).scalars().first()
    if step is None:
        raise NotFoundError("ApprovalStep", step_id)
    return step


def _snapshot(step: ApprovalStep) -> dict:
    return {
        "status": step.status,
        "level": step.level,
        "sequence_order": step.sequence_order,
        "approver_id": step.approver_id,
        "decided_by": step.decided_by,
        "escalation_date": step.escalation_date,
    }


def _notify(kind: str, entity_id, send, *args) -> list[DeliveryDegraded]:
    """Call a notification function; turn delivery failure into a warning."""
    try:
        send(*args)
    except NotificationError as exc:
        warning = DeliveryDegraded(kind, entity_id, str(exc))
        logger.warning("Delivery degraded: %s", warning)
        return [warning]
    return []


def _request_approval(db: Session, step: ApprovalStep, payable: Payable) -> list[DeliveryDegraded]:
    """Notify the step's approver at most once (guarded by notification_sent)."""
    if not claim_notification(db, step):
        logger.debug("Approval request for step %s already sent.", step.id)
        return []
    db.commit()

    warnings = _notify(
        notify_svc.APPROVAL_REQUESTED, step.id, notify_svc.send_approval_request, step, payable
    )
    if warnings:
        release_notification(db, step)
        db.commit()
    return warnings


# ─── Create workflow ───

def create_workflow(
    db: Session,
    payable_id: uuid.UUID,
    category: PaymentCategory | str | None = None,
    risk_level: RiskLevel | str | None = None,
    priority: PaymentPriority | str | None = None,
) -> WorkflowResult:
    """Resolve the approval level for a payable and persist its approval chain.

    Category and priority default to the values stored on the payable; the
    risk level defaults to the supplier's. Steps are persisted in one commit,
    then only step 1 is notified. AUTOMATIC payables get no steps and are
    written back as not_required.

    Raises:
        NotFoundError: unknown payable.
        ValidationError: missing/non-positive amount, missing category, or no
            supplier to take the risk level from.
        ConflictError: the payable already has an approval workflow, including
            one another writer created while this call was running.
    """
    payable = payables_svc.get_payable(db, payable_id)

    try:
        amount = Decimal(payable.amount_due) if payable.amount_due is not None else None
    except (InvalidOperation, TypeError, ValueError):
        amount = None
    if amount is None or amount <= 0:
        raise ValidationError(
            f"Payable {payable_id} has no positive amount_due.", field="amount_due"
        )

    category = category or payable.category
    if not category:
        raise ValidationError(f"Payable {payable_id} has no payment category.", field="category")
    category = _coerce(PaymentCategory, category, "category")

    priority = priority or payable.priority
    priority = _coerce(PaymentPriority, priority, "priority") if priority else None

    if risk_level is None:
        if payable.supplier_id is None:
            raise ValidationError(
                f"Payable {payable_id} has no supplier to derive a risk level from.",
                field="supplier_id",
            )
        risk_level = supplier_svc.get_supplier_profile(db, payable.supplier_id).risk_level
    risk_level = _coerce(RiskLevel, risk_level, "risk_level")

    existing = db.execute(
        select(func.count(ApprovalStep.id)).where(ApprovalStep.payable_id == payable_id)
    ).scalar_one()
    if existing:
        raise ConflictError(
            payable_id,
            payable.approval_status,
            f"Payable {payable_id} already has an approval workflow ({existing} steps).",
        )

    required_level = resolve_approval_level(amount, category, risk_level, priority)
    chain = build_approval_chain(required_level)

    logger.info(
        "Creating approval workflow: payable=%s amount=%s category=%s risk=%s priority=%s level=%s",
        payable_id, amount, category.value, risk_level.value,
        priority.value if priority else None, required_level.value,
    )

    if not chain:
        payables_svc.set_approval_status(db, payable_id, PayableApprovalStatus.NOT_REQUIRED)
        audit_svc.record(
            db=db,
            action="payable_auto_approved",
            entity_type="payable",
            entity_id=payable_id,
            after={"approval_status": PayableApprovalStatus.NOT_REQUIRED.value, "amount": amount},
            notes=f"Amount within {ApprovalLevel.AUTOMATIC.value} threshold; no approval required",
        )
        db.commit()
        return WorkflowResult(payable_id=payable_id, required_level=required_level)

    # Resolve every approver before writing anything.
    approvers = [(level, directory_svc.get_approver_for_level(level)) for level in chain]

    steps = []
    for position, (level, approver) in enumerate(approvers, start=1):
        step = ApprovalStep(
            payable_id=payable_id,
            level=level.value,
            sequence_order=position,
            approver_id=approver.id,
            approver_name=approver.name,
            approver_email=approver.email,
            status=ApprovalStatus.PENDING.value,
            is_required=True,
            notification_sent=False,
        )
        db.add(step)
        steps.append(step)

    try:
        db.flush()
        payables_svc.set_approval_status(db, payable_id, PayableApprovalStatus.PENDING)
        audit_svc.record(
            db=db,
            action="approval_workflow_created",
            entity_type="payable",
            entity_id=payable_id,
            after={
                "required_level": required_level.value,
                "steps": [{"level": s.level, "approver_id": s.approver_id} for s in steps],
            },
        )
        db.commit()
    except IntegrityError as exc:
        # Another writer created the workflow after the existence check.
        db.rollback()
        raise ConflictError(
            payable_id,
            payable.approval_status,
            f"Payable {payable_id} already has an approval workflow.",
        ) from exc

    warnings = _request_approval(db, steps[0], payable)

    logger.info(
        "Approval workflow created for payable %s with %d steps", payable_id, len(steps)
    )
    return WorkflowResult(
        payable_id=payable_id,
        required_level=required_level,
        steps=steps,
        delivery_warnings=warnings,
    )


# ─── Decide ───

def decide(
    db: Session,
    step_id: uuid.UUID,
    approver_id: str,
    approve: bool,
    comments: str | None = None,
) -> DecisionResult:
    """Apply an approve or reject decision to the current step of a workflow.

    Raises:
        NotFoundError: unknown step.
        AuthorizationError: approver_id is not the step's assigned approver.
        ConflictError: step already decided, an earlier step is still
            undecided, or a concurrent writer changed the step first.
    """
    step = _get_step(db, step_id)
    approver_id = str(approver_id)

    if approver_id != step.approver_id:
        logger.warning(
            "Unauthorized approval attempt on step %s by %s (assigned %s)",
            step_id, approver_id, step.approver_id,
        )
        raise AuthorizationError(step_id, approver_id, step.approver_id)

    if ApprovalStatus(step.status) not in UNDECIDED:
        raise ConflictError(
            step_id, step.status, f"Approval step {step_id} is already {step.status}."
        )

    current = next_undecided_step(get_workflow_steps(db, step.payable_id))
    if current is None or current.id != step.id:
        raise ConflictError(
            step_id,
            step.status,
            f"Approval step {step.sequence_order} cannot be decided before "
            f"step {current.sequence_order if current else '?'}.",
        )

    payable = payables_svc.get_payable(db, step.payable_id)
    before = _snapshot(step)
    now = utcnow()
    new_status = ApprovalStatus.APPROVED if approve else ApprovalStatus.REJECTED

    try:
        transition(
            db, step, UNDECIDED,
            status=new_status.value,
            decided_at=now,
            decided_by=approver_id,
            comments=append_comment(step.comments, comments),
        )
        audit_svc.record(
            db=db,
            action=f"approval_step_{new_status.value.lower()}",
            entity_type="approval_step",
            entity_id=step.id,
            actor_id=approver_id,
            before=before,
            after=_snapshot(step),
            notes=comments,
        )

        if approve:
            return _after_approval(db, step, payable)
        return _after_rejection(db, step, payable, now)
    except ConflictError:
        db.rollback()
        raise


def _after_approval(db: Session, step: ApprovalStep, payable: Payable) -> DecisionResult:
    steps = get_workflow_steps(db, step.payable_id)
    next_step = next_undecided_step(steps)

    if next_step is not None:
        db.commit()
        logger.info(
            "Step %s approved; payable %s advances to step %d (%s)",
            step.id, payable.id, next_step.sequence_order, next_step.level,
        )
        warnings = _request_approval(db, next_step, payable)
        return DecisionResult(
            step=step,
            workflow_status=WorkflowStatus.IN_PROGRESS,
            next_step=next_step,
            delivery_warnings=warnings,
        )

    payables_svc.set_approval_status(db, payable.id, PayableApprovalStatus.APPROVED)
    audit_svc.record(
        db=db,
        action="approval_workflow_approved",
        entity_type="payable",
        entity_id=payable.id,
        actor_id=step.decided_by,
        after={"approval_status": PayableApprovalStatus.APPROVED.value},
    )
    db.commit()
    logger.info("Approval workflow completed for payable %s", payable.id)

    warnings = _notify(
        notify_svc.APPROVAL_COMPLETED, payable.id,
        notify_svc.send_approval_completed, payable, steps,
    )
    return DecisionResult(
        step=step,
        workflow_status=derive_workflow_status(steps),
        delivery_warnings=warnings,
    )


def _after_rejection(
    db: Session, step: ApprovalStep, payable: Payable, now: datetime
) -> DecisionResult:
    reason = f"Workflow rejected: Rejected at {step.level}"
    skipped = []
    for other in get_workflow_steps(db, step.payable_id):
        if other.id == step.id or ApprovalStatus(other.status) not in UNDECIDED:
            continue
        transition(
            db, other, UNDECIDED,
            status=ApprovalStatus.SKIPPED.value,
            decided_at=now,
            comments=append_comment(other.comments, reason),
        )
        skipped.append(other)

    payables_svc.set_approval_status(db, payable.id, PayableApprovalStatus.REJECTED)
    audit_svc.record(
        db=db,
        action="approval_workflow_rejected",
        entity_type="payable",
        entity_id=payable.id,
        actor_id=step.decided_by,
        after={
            "approval_status": PayableApprovalStatus.REJECTED.value,
            "rejected_level": step.level,
            "skipped_steps": [s.sequence_order for s in skipped],
        },
    )
    db.commit()
    logger.info(
        "Approval workflow rejected for payable %s at %s (%d steps skipped)",
        payable.id, step.level, len(skipped),
    )

    warnings = _notify(
        notify_svc.APPROVAL_REJECTED, payable.id,
        notify_svc.send_approval_rejected, payable, step,
    )
    return DecisionResult(
        step=step,
        workflow_status=WorkflowStatus.REJECTED,
        skipped_steps=skipped,
        delivery_warnings=warnings,
    )


# ─── Escalate ───

def escalate(
    db: Session,
    step_id: uuid.UUID,
    reason: str,
    now: datetime | None = None,
) -> EscalationResult:
    """Mark a PENDING step as ESCALATED and alert finance.

    The step keeps its approver and position; it stays decidable. Its
    approver is alerted too, but only when the step is the current one.

    Raises:
        NotFoundError: unknown step.
        ValidationError: empty reason.
        ConflictError: step is not PENDING or was already escalated.
    """
    if not reason or not reason.strip():
        raise ValidationError("Escalation reason is required.", field="reason")

    step = _get_step(db, step_id)
    if step.status != ApprovalStatus.PENDING.value or step.escalation_date is not None:
        raise ConflictError(
            step_id, step.status, f"Approval step {step_id} cannot be escalated from {step.status}."
        )

    now = now or utcnow()
    before = _snapshot(step)
    try:
        transition(
            db, step, {ApprovalStatus.PENDING},
            ApprovalStep.escalation_date.is_(None),
            status=ApprovalStatus.ESCALATED.value,
            escalation_date=now,
            comments=append_comment(step.comments, f"Escalated: {reason}"),
        )
    except ConflictError:
        db.rollback()
        raise

    audit_svc.record(
        db=db,
        action="approval_step_escalated",
        entity_type="approval_step",
        entity_id=step.id,
        before=before,
        after=_snapshot(step),
        notes=reason,
    )
    db.commit()
    logger.warning(
        "Approval step %s (%s, payable %s) escalated: %s",
        step.id, step.level, step.payable_id, reason,
    )

    # Approvers of later steps must not hear of the payable before their turn.
    current = next_undecided_step(get_workflow_steps(db, step.payable_id))
    is_current = current is not None and current.id == step.id

    payable = payables_svc.get_payable(db, step.payable_id)
    warnings = _notify(
        notify_svc.APPROVAL_ESCALATED, step.id,
        notify_svc.send_approval_escalated, step, payable, reason, is_current,
    )
    return EscalationResult(step=step, delivery_warnings=warnings)


# ─── Queries ───

def get_workflow_steps(db: Session, payable_id: uuid.UUID) -> list[ApprovalStep]:
    """All steps of a payable's workflow, ordered by sequence."""
    stmt = (
        select(ApprovalStep)
        .where(ApprovalStep.payable_id == payable_id)
        .order_by(ApprovalStep.sequence_order.asc())
    )
    return list(db.execute(stmt).scalars().all())


def get_workflow_status(steps: list[ApprovalStep]) -> WorkflowStatus:
    return derive_workflow_status(steps)


def get_pending_steps_for_approver(db: Session, approver_id: str) -> list[ApprovalStep]:
    """Undecided (PENDING or ESCALATED) steps assigned to the approver, oldest first."""
    stmt = (
        select(ApprovalStep)
        .where(
            ApprovalStep.approver_id == str(approver_id),
            ApprovalStep.status.in_([s.value for s in UNDECIDED]),
        )
        .order_by(ApprovalStep.created_at.asc())
    )
    return list(db.execute(stmt).scalars().all())


def count_pending_for_approver(db: Session, approver_id: str) -> int:
    stmt = select(func.count(ApprovalStep.id)).where(
        ApprovalStep.approver_id == str(approver_id),
        ApprovalStep.status.in_([s.value for s in UNDECIDED]),
    )
    return db.execute(stmt).scalar_one()
