"""Celery task that builds the daily optimized payment schedule."""
import logging

from payables.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="payables.workers.payment_tasks.build_daily_payment_schedule")
def build_daily_payment_schedule(available_cash_flow: str | None = None, payable_ids: list[str] | None = None):
    """Optimize today's disbursements under the cash-flow limit.

    Runs daily at 6 AM UTC with DAILY_CASH_FLOW_LIMIT; can also be queued
    by hand with an explicit budget (string amount) and payable ids.
    Returns the schedule as a JSON-safe dict.
    """
    logger.info("build_daily_payment_schedule: starting")
    try:
        import uuid
        from decimal import Decimal

        from payables.db.session import get_sync_session
        from payables.schemas.payment_schedule import PaymentScheduleOut
        from payables.services.payment_schedule import build_payment_schedule

        cash_flow = Decimal(available_cash_flow) if available_cash_flow is not None else None
        ids = [uuid.UUID(str(pid)) for pid in payable_ids] if payable_ids else None

        with get_sync_session() as db:
            schedule = build_payment_schedule(db, cash_flow, payable_ids=ids)

        logger.info(
            "build_daily_payment_schedule complete: payments=%d, total=%s, savings=%s",
            len(schedule.payments), schedule.total_optimized_amount, schedule.total_savings,
        )
        return PaymentScheduleOut.model_validate(schedule).model_dump(mode="json")

    except Exception as exc:
        logger.exception("build_daily_payment_schedule failed: %s", exc)
        return {"status": "error", "error": str(exc)}
