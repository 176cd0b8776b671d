"""Celery task for the periodic approval escalation sweep."""
import logging

from payables.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="payables.workers.escalation_tasks.check_approval_escalations")
def check_approval_escalations():
    """Escalate approval steps left PENDING longer than ESCALATION_THRESHOLD_HOURS.

    Runs every ESCALATION_SWEEP_MINUTES. Safe to overlap with another run:
    a step is escalated at most once.
    """
    logger.info("check_approval_escalations: starting sweep")
    try:
        from payables.db.session import get_sync_session
        from payables.schemas.approval import EscalationSweepOut
        from payables.services.escalation import check_escalations

        with get_sync_session() as db:
            stats = check_escalations(db)

        return EscalationSweepOut.model_validate(stats).model_dump()

    except Exception as exc:
        logger.exception("check_approval_escalations failed: %s", exc)
        return {"status": "error", "error": str(exc)}
