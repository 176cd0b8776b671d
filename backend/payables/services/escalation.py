"""Escalation sweep: escalates approval steps left PENDING past the threshold.

The caller owns the timer (Celery beat in payables.workers.escalation_tasks);
this module only runs one sweep per call.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from payables.core.config import settings
from payables.core.exceptions import ConflictError, ValidationError
from payables.db.base import utcnow
from payables.models.approval import ApprovalStatus, ApprovalStep
from payables.services import approval as approval_svc

logger = logging.getLogger(__name__)


def find_escalation_candidates(db: Session, cutoff: datetime) -> list[ApprovalStep]:
    """PENDING steps created before ``cutoff`` that were never escalated."""
    stmt = (
        select(ApprovalStep)
        .where(
            ApprovalStep.status == ApprovalStatus.PENDING.value,
            ApprovalStep.created_at < cutoff,
            ApprovalStep.escalation_date.is_(None),
        )
        .order_by(ApprovalStep.created_at.asc())
    )
    return list(db.execute(stmt).scalars().all())


def check_escalations(
    db: Session,
    now: datetime | None = None,
    threshold_hours: int | None = None,
) -> dict:
    """Escalate every stale PENDING step once.

    A candidate that another sweep (or a decision) changed first is counted
    as skipped; the guarded transition makes a double escalation impossible.

    Returns:
        {"candidates", "escalated", "skipped", "degraded_notifications"}
    """
    now = now or utcnow()
    hours = settings.ESCALATION_THRESHOLD_HOURS if threshold_hours is None else threshold_hours
    if hours < 0:
        raise ValidationError("threshold_hours must not be negative.", field="threshold_hours")

    cutoff = now - timedelta(hours=hours)
    reason = f"{hours}-hour timeout exceeded"

    candidates = find_escalation_candidates(db, cutoff)
    stats = {
        "candidates": len(candidates),
        "escalated": 0,
        "skipped": 0,
        "degraded_notifications": 0,
    }

    for step in candidates:
        step_id = step.id
        try:
            result = approval_svc.escalate(db, step_id, reason, now=now)
        except ConflictError as exc:
            stats["skipped"] += 1
            logger.info("Escalation of step %s skipped: %s", step_id, exc)
            continue
        stats["escalated"] += 1
        stats["degraded_notifications"] += len(result.delivery_warnings)

    logger.info(
        "check_escalations complete: candidates=%d, escalated=%d, skipped=%d, degraded=%d",
        stats["candidates"], stats["escalated"], stats["skipped"], stats["degraded_notifications"],
    )
    return stats
