"""Logging for the payables workers: JSON lines in production, plain text otherwise."""
import logging
import sys

from pythonjsonlogger import jsonlogger

from payables.core.config import settings

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# Libraries that are chatty at INFO; their warnings still come through.
QUIET_LOGGERS = ("sqlalchemy.engine", "celery.beat", "kombu")


def setup_logging() -> None:
    """Configure the root logger once per worker process at LOG_LEVEL."""
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    if settings.APP_ENV == "production":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                LOG_FORMAT,
                rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
            )
        )
        logging.root.handlers = [handler]
        logging.root.setLevel(level)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
