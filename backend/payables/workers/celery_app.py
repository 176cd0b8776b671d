from celery import Celery
from celery.schedules import crontab

from payables.core.config import settings
from payables.core.logging import setup_logging
from payables.core.monitoring import init_error_monitoring

setup_logging()
init_error_monitoring()

celery_app = Celery(
    "payables_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "payables.workers.escalation_tasks",
        "payables.workers.payment_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

celery_app.conf.beat_schedule = {
    "check-approval-escalations": {
        "task": "payables.workers.escalation_tasks.check_approval_escalations",
        "schedule": settings.ESCALATION_SWEEP_MINUTES * 60.0,
    },
    "build-daily-payment-schedule": {
        "task": "payables.workers.payment_tasks.build_daily_payment_schedule",
        "schedule": crontab(hour=6, minute=0),
    },
}
