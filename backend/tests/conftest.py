"""Shared fixtures: in-memory SQLite database with the real ORM models."""
import uuid
from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import payables.models  # noqa: F401  (registers every table on Base.metadata)
from payables.db.base import Base
from payables.models.payable import Payable
from payables.models.supplier import Supplier
from payables.rules.business_calendar import BusinessCalendar


@pytest.fixture
def engine():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    with SessionLocal() as session:
        yield session


@pytest.fixture
def supplier(db):
    row = Supplier(
        name="Northern Steel Ltd",
        email="ar@northernsteel.example",
        risk_level="LOW",
        reliability_score=Decimal("0.9500"),
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def make_payable(db, supplier):
    """Factory for persisted payables; defaults to a LOW-risk MATERIALS payable."""

    def _make(
        amount: str | None = "5000.00",
        category: str | None = "MATERIALS",
        priority: str | None = None,
        due_date: date | None = None,
        supplier_id: uuid.UUID | None | str = "default",
        **kwargs,
    ) -> Payable:
        payable = Payable(
            supplier_id=supplier.id if supplier_id == "default" else supplier_id,
            invoice_reference=kwargs.pop("invoice_reference", f"INV-{uuid.uuid4().hex[:6]}"),
            amount_due=Decimal(amount) if amount is not None else None,
            due_date=due_date or date.today() + timedelta(days=30),
            category=category,
            priority=priority,
            **kwargs,
        )
        db.add(payable)
        db.commit()
        return payable

    return _make


@pytest.fixture
def calendar():
    """Weekends plus Canada Day 2025 and Christmas/Boxing Day 2025."""
    return BusinessCalendar(
        holidays=frozenset({date(2025, 7, 1), date(2025, 12, 25), date(2025, 12, 26)})
    )


@pytest.fixture
def notify():
    """Patch every notification function; yields the mocks by kind."""
    with patch("payables.services.notifications.send_approval_request") as request, \
            patch("payables.services.notifications.send_approval_completed") as completed, \
            patch("payables.services.notifications.send_approval_rejected") as rejected, \
            patch("payables.services.notifications.send_approval_escalated") as escalated:
        yield SimpleNamespace(
            request=request, completed=completed, rejected=rejected, escalated=escalated
        )
