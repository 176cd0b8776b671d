"""Tests for the payment schedule service (database snapshot → optimizer)."""
from datetime import date, timedelta
from decimal import Decimal

from payables.models.supplier import Supplier
from payables.rules.approval_matrix import PaymentPriority
from payables.services.payment_schedule import (
    build_payment_schedule,
    get_schedulable_payables,
    snapshot_payables,
)

TODAY = date(2025, 6, 2)


def test_only_cleared_unpaid_payables_are_scheduled(db, make_payable):
    approved = make_payable(amount="2000.00", approval_status="approved")
    auto = make_payable(amount="500.00", approval_status="not_required")
    make_payable(amount="3000.00", approval_status="pending")
    make_payable(amount="4000.00", approval_status="rejected")
    make_payable(amount="5000.00", approval_status="approved", status="PAID")
    make_payable(amount="6000.00")  # no workflow yet

    payables = get_schedulable_payables(db)

    assert {p.id for p in payables} == {approved.id, auto.id}


def test_payable_ids_filter(db, make_payable):
    first = make_payable(amount="2000.00", approval_status="approved")
    make_payable(amount="2500.00", approval_status="approved")

    payables = get_schedulable_payables(db, payable_ids=[first.id])

    assert [p.id for p in payables] == [first.id]


def test_snapshot_joins_supplier_profile(db, make_payable, supplier):
    payable = make_payable(amount="20000.00", approval_status="approved")

    [snapshot] = snapshot_payables(db, [payable])

    assert snapshot.payable_id == payable.id
    assert snapshot.reliability == 0.95
    # no negotiated rate; standard 2% above 10,000
    assert snapshot.early_payment_discount == 0.02
    assert snapshot.priority is PaymentPriority.MEDIUM


def test_negotiated_discount_wins(db, make_payable):
    supplier = Supplier(name="Precast Co", risk_level="LOW", early_payment_discount_rate=Decimal("0.0350"))
    db.add(supplier)
    db.commit()
    payable = make_payable(amount="500.00", supplier_id=supplier.id, approval_status="approved")

    [snapshot] = snapshot_payables(db, [payable])

    assert snapshot.early_payment_discount == 0.035
    # reliability falls back to the configured default
    assert snapshot.reliability == 0.8


def test_build_schedule_end_to_end(db, make_payable, calendar):
    make_payable(
        amount="40000.00", approval_status="approved", due_date=TODAY + timedelta(days=20)
    )
    make_payable(
        amount="30000.00", approval_status="approved", due_date=TODAY + timedelta(days=20)
    )
    make_payable(
        amount="20000.00", approval_status="approved", due_date=TODAY + timedelta(days=20),
        description="Emergency crane repair",
    )

    schedule = build_payment_schedule(db, Decimal("50000"), calendar=calendar, today=TODAY)

    assert schedule.total_optimized_amount <= Decimal("50000")
    assert len(schedule.payments) + len(schedule.excluded_payable_ids) == 3
    emergency = [p for p in schedule.payments if p.priority is PaymentPriority.CRITICAL]
    assert emergency and emergency[0].payment_date == TODAY + timedelta(days=1)


def test_build_schedule_defaults_to_daily_limit(db, make_payable, calendar):
    make_payable(amount="1000.00", approval_status="approved")

    schedule = build_payment_schedule(db, calendar=calendar, today=TODAY)

    assert schedule.available_cash_flow == Decimal("250000.00")
    assert len(schedule.payments) == 1


def test_unknown_stored_priority_does_not_abort_the_batch(db, make_payable, calendar):
    good = make_payable(amount="1000.00", approval_status="approved")
    odd = make_payable(amount="60000.00", approval_status="approved", priority="URGENT")

    schedule = build_payment_schedule(db, Decimal("100000"), calendar=calendar, today=TODAY)

    priorities = {p.payable_id: p.priority for p in schedule.payments}
    assert priorities == {good.id: PaymentPriority.LOW, odd.id: PaymentPriority.HIGH}
    assert schedule.malformed_payable_ids == []


def test_supplier_with_unknown_risk_level_uses_default_profile(db, make_payable, calendar):
    supplier = Supplier(name="Fly-by-night Rentals", risk_level="EXTREME", reliability_score=Decimal("0.9900"))
    db.add(supplier)
    db.commit()
    payable = make_payable(amount="1000.00", approval_status="approved", supplier_id=supplier.id)

    (snapshot,) = snapshot_payables(db, [payable])
    schedule = build_payment_schedule(db, Decimal("100000"), calendar=calendar, today=TODAY)

    assert snapshot.reliability == 0.8
    assert [p.payable_id for p in schedule.payments] == [payable.id]
