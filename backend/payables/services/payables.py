"""Payable source: reads payables and writes back their approval outcome."""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from payables.core.exceptions import NotFoundError
from payables.models.payable import Payable, PayableApprovalStatus
from payables.rules.approval_matrix import PaymentPriority

logger = logging.getLogger(__name__)

CRITICAL_KEYWORDS = ("emergency", "critical")
HIGH_PRIORITY_MIN = 50_000
MEDIUM_PRIORITY_MIN = 10_000


def get_payable(db: Session, payable_id: uuid.UUID) -> Payable:
    payable = db.execute(select(Payable).where(Payable.id == payable_id)).scalars().first()
    if payable is None:
        raise NotFoundError("Payable", payable_id)
    return payable


def derive_priority(payable: Payable) -> PaymentPriority:
    """Stored priority, or one inferred from description keywords and amount.

    An unrecognised stored value is logged and ignored.
    """
    if payable.priority:
        try:
            return PaymentPriority(payable.priority)
        except ValueError:
            logger.warning(
                "Payable %s has unknown priority %r; deriving one instead.",
                payable.id, payable.priority,
            )

    description = (payable.description or "").lower()
    if any(word in description for word in CRITICAL_KEYWORDS):
        return PaymentPriority.CRITICAL

    amount = float(payable.amount_due or 0)
    if amount > HIGH_PRIORITY_MIN:
        return PaymentPriority.HIGH
    if amount > MEDIUM_PRIORITY_MIN:
        return PaymentPriority.MEDIUM
    return PaymentPriority.LOW


def set_approval_status(
    db: Session,
    payable_id: uuid.UUID,
    approval_status: PayableApprovalStatus,
) -> Payable:
    """Write-back hook: record the workflow outcome on the payable.

    Flushes only; the caller commits together with the step transition.
    """
    payable = get_payable(db, payable_id)
    payable.approval_status = PayableApprovalStatus(approval_status).value
    if approval_status in (
        PayableApprovalStatus.APPROVED,
        PayableApprovalStatus.REJECTED,
        PayableApprovalStatus.NOT_REQUIRED,
    ):
        payable.approval_completed_at = datetime.now(timezone.utc)
    db.flush()
    logger.info("Payable %s approval_status → %s", payable_id, payable.approval_status)
    return payable
