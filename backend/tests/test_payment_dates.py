"""Tests for payment date, method, fee and settlement assignment."""
import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest

from payables.rules.approval_matrix import PaymentPriority
from payables.rules.payment_dates import (
    PaymentMethod,
    assign_payment_date,
    base_payment_date,
    choose_payment_method,
    estimate_processing_fee,
    estimate_savings,
)
from payables.rules.payment_scoring import PayableSnapshot, score_payable

FRIDAY = date(2025, 6, 27)


def _make_score(amount="20000", priority=PaymentPriority.MEDIUM, due_in_days=20, discount=0.01):
    payable = PayableSnapshot(
        payable_id=uuid.uuid4(),
        amount=Decimal(amount),
        due_date=FRIDAY + timedelta(days=due_in_days),
        priority=priority,
        early_payment_discount=discount,
    )
    return score_payable(payable, FRIDAY)


# ─── Base dates ───────────────────────────────────────────────────────────────

def test_critical_is_paid_next_business_day(calendar):
    payment = assign_payment_date(_make_score(priority=PaymentPriority.CRITICAL), calendar, FRIDAY)

    assert payment.payment_date >= FRIDAY + timedelta(days=1)
    assert calendar.is_business_day(payment.payment_date)
    # Saturday rolls to Monday
    assert payment.payment_date == date(2025, 6, 30)


def test_high_priority_is_two_days_out():
    due = FRIDAY + timedelta(days=20)
    assert base_payment_date(PaymentPriority.HIGH, due, 0.0, FRIDAY) == FRIDAY + timedelta(days=2)


def test_medium_with_discount_is_paid_early():
    due = FRIDAY + timedelta(days=20)
    assert base_payment_date(PaymentPriority.MEDIUM, due, 0.02, FRIDAY) == FRIDAY + timedelta(days=3)


def test_medium_without_discount_waits_until_five_days_before_due():
    due = FRIDAY + timedelta(days=20)
    assert base_payment_date(PaymentPriority.MEDIUM, due, 0.01, FRIDAY) == due - timedelta(days=5)


def test_low_priority_is_paid_day_before_due():
    due = FRIDAY + timedelta(days=20)
    assert base_payment_date(PaymentPriority.LOW, due, 0.0, FRIDAY) == due - timedelta(days=1)


def test_overdue_payable_is_never_scheduled_in_the_past():
    due = FRIDAY - timedelta(days=10)
    assert base_payment_date(PaymentPriority.LOW, due, 0.0, FRIDAY) == FRIDAY


def test_payment_date_skips_holiday(calendar):
    # Due Wed 2 July → LOW pays Tue 1 July (Canada Day) → Wed 2 July
    score = _make_score(priority=PaymentPriority.LOW, due_in_days=5)
    payment = assign_payment_date(score, calendar, FRIDAY)
    assert payment.payment_date == date(2025, 7, 2)


# ─── Method, fee, settlement ──────────────────────────────────────────────────

@pytest.mark.parametrize(
    "amount, method",
    [
        ("150000", PaymentMethod.WIRE_TRANSFER),
        ("100000", PaymentMethod.ACH_TRANSFER),
        ("50000", PaymentMethod.ACH_TRANSFER),
        ("10000", PaymentMethod.INTERAC_E_TRANSFER),
        ("250", PaymentMethod.INTERAC_E_TRANSFER),
    ],
)
def test_method_by_amount_tier(amount, method):
    assert choose_payment_method(Decimal(amount)) is method


def test_processing_fees():
    assert estimate_processing_fee(Decimal("150000"), PaymentMethod.WIRE_TRANSFER) == Decimal("25.00")
    assert estimate_processing_fee(Decimal("50000"), PaymentMethod.ACH_TRANSFER) == Decimal("50.00")
    assert estimate_processing_fee(Decimal("500"), PaymentMethod.INTERAC_E_TRANSFER) == Decimal("1.50")


def test_savings_is_amount_times_discount():
    assert estimate_savings(Decimal("20000"), 0.02) == Decimal("400.00")


def test_ach_settles_next_business_day(calendar):
    payment = assign_payment_date(
        _make_score(amount="50000", priority=PaymentPriority.CRITICAL), calendar, FRIDAY
    )
    assert payment.payment_method is PaymentMethod.ACH_TRANSFER
    assert payment.payment_date == date(2025, 6, 30)
    # Tue 1 July is Canada Day
    assert payment.settlement_date == date(2025, 7, 2)


def test_wire_settles_same_day(calendar):
    payment = assign_payment_date(
        _make_score(amount="150000", priority=PaymentPriority.CRITICAL), calendar, FRIDAY
    )
    assert payment.settlement_date == payment.payment_date


def test_days_shifted_is_negative_for_early_payment(calendar):
    payment = assign_payment_date(_make_score(priority=PaymentPriority.HIGH), calendar, FRIDAY)
    assert payment.days_shifted < 0
