"""Payment schedule service: snapshots payable rows and runs the optimizer."""
import logging
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from payables.core.config import settings
from payables.core.exceptions import ValidationError
from payables.models.payable import Payable, PayableApprovalStatus, PayableStatus
from payables.rules.business_calendar import BusinessCalendar, get_default_calendar
from payables.rules.payment_optimizer import OptimizedPaymentSchedule, optimize_payment_schedule
from payables.rules.payment_scoring import PayableSnapshot, to_amount
from payables.services import supplier_risk as supplier_svc
from payables.services.payables import derive_priority

logger = logging.getLogger(__name__)

# Payable statuses that still owe money.
PAYABLE_STATUSES = (
    PayableStatus.PENDING.value,
    PayableStatus.PARTIALLY_PAID.value,
    PayableStatus.OVERDUE.value,
)

# Approval outcomes that clear a payable for payment.
CLEARED_APPROVAL_STATUSES = (
    PayableApprovalStatus.APPROVED.value,
    PayableApprovalStatus.NOT_REQUIRED.value,
)


def get_schedulable_payables(
    db: Session, payable_ids: list[uuid.UUID] | None = None
) -> list[Payable]:
    stmt = select(Payable).where(
        Payable.status.in_(PAYABLE_STATUSES),
        Payable.approval_status.in_(CLEARED_APPROVAL_STATUSES),
    )
    if payable_ids:
        stmt = stmt.where(Payable.id.in_(payable_ids))
    return list(db.execute(stmt.order_by(Payable.due_date.asc())).scalars().all())


def snapshot_payables(db: Session, payables: list[Payable]) -> list[PayableSnapshot]:
    """Join each payable with its supplier profile and effective priority."""
    profiles: dict = {}
    snapshots = []
    for payable in payables:
        if payable.supplier_id not in profiles:
            try:
                profile = supplier_svc.get_supplier_profile(db, payable.supplier_id)
            except ValidationError as exc:
                logger.warning("%s Using default supplier profile for scheduling.", exc)
                profile = supplier_svc.default_profile(payable.supplier_id)
            profiles[payable.supplier_id] = profile
        profile = profiles[payable.supplier_id]

        snapshots.append(
            PayableSnapshot(
                payable_id=payable.id,
                amount=to_amount(payable.amount_due) if payable.amount_due is not None else None,
                due_date=payable.due_date,
                priority=derive_priority(payable),
                supplier_id=payable.supplier_id,
                reliability=profile.reliability,
                early_payment_discount=profile.early_payment_discount(payable.amount_due),
                description=payable.description,
            )
        )
    return snapshots


def build_payment_schedule(
    db: Session,
    available_cash_flow: Decimal | None = None,
    payable_ids: list[uuid.UUID] | None = None,
    calendar: BusinessCalendar | None = None,
    today: date | None = None,
) -> OptimizedPaymentSchedule:
    """Optimize a schedule over every payable cleared for payment.

    ``available_cash_flow`` defaults to DAILY_CASH_FLOW_LIMIT. Payables with
    no finished workflow, or already paid or canceled, are never scheduled.
    """
    if available_cash_flow is None:
        available_cash_flow = settings.DAILY_CASH_FLOW_LIMIT

    payables = get_schedulable_payables(db, payable_ids)
    logger.info("build_payment_schedule: %d payables cleared for payment", len(payables))

    snapshots = snapshot_payables(db, payables)
    return optimize_payment_schedule(
        snapshots,
        available_cash_flow,
        calendar=calendar or get_default_calendar(),
        today=today,
    )
