from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from payables.core.config import settings


@lru_cache
def get_engine() -> Engine:
    return create_engine(
        settings.DATABASE_URL_SYNC,
        echo=settings.APP_ENV == "development",
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def get_sync_session() -> Session:
    """Return a sync SQLAlchemy session. Caller must close it."""
    SessionLocal = sessionmaker(bind=get_engine(), expire_on_commit=False, autoflush=False)
    return SessionLocal()
