"""Sentry error monitoring bootstrap for worker processes."""
import logging

import sentry_sdk

from payables.core.config import settings

logger = logging.getLogger(__name__)


def init_error_monitoring() -> bool:
    """Initialise Sentry when SENTRY_DSN is configured. Returns True if enabled."""
    if not settings.SENTRY_DSN:
        return False
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        environment=settings.APP_ENV,
        send_default_pii=False,
    )
    logger.info("Sentry initialized")
    return True
