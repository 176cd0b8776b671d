"""Tests for the greedy cash-flow selection."""
import uuid
from datetime import date
from decimal import Decimal

from payables.rules.cash_flow import rank_by_score, select_within_cash_flow
from payables.rules.payment_scoring import OptimizationScore, PayableSnapshot


def _make_score(amount: str, total: float) -> OptimizationScore:
    payable = PayableSnapshot(
        payable_id=uuid.uuid4(), amount=Decimal(amount), due_date=date(2025, 7, 15)
    )
    return OptimizationScore(
        payable=payable,
        due_date_score=0.0,
        supplier_reliability=0.0,
        early_payment_discount=0.0,
        cash_flow_score=0.0,
        priority_score=0.0,
        total=total,
    )


def test_accepted_total_never_exceeds_budget():
    scores = [_make_score("40000", 0.9), _make_score("30000", 0.8), _make_score("20000", 0.7)]

    accepted, rejected = select_within_cash_flow(scores, Decimal("50000"))

    assert sum(s.payable.amount for s in accepted) <= Decimal("50000")
    # 40k fits, 30k does not, 20k does not fit the 10k left
    assert [s.payable.amount for s in accepted] == [Decimal("40000")]
    assert [s.payable.amount for s in rejected] == [Decimal("30000"), Decimal("20000")]


def test_selection_is_deterministic():
    scores = [_make_score("40000", 0.9), _make_score("30000", 0.8), _make_score("20000", 0.7)]

    first, _ = select_within_cash_flow(scores, Decimal("50000"))
    second, _ = select_within_cash_flow(list(scores), Decimal("50000"))

    assert [s.payable.payable_id for s in first] == [s.payable.payable_id for s in second]


def test_skipped_payable_does_not_block_smaller_ones():
    scores = [_make_score("60000", 0.9), _make_score("20000", 0.5)]

    accepted, rejected = select_within_cash_flow(scores, Decimal("50000"))

    assert [s.payable.amount for s in accepted] == [Decimal("20000")]
    assert len(rejected) == 1


def test_ties_keep_input_order():
    a, b = _make_score("100", 0.5), _make_score("200", 0.5)
    assert rank_by_score([a, b]) == [a, b]


def test_zero_budget_accepts_nothing():
    accepted, rejected = select_within_cash_flow([_make_score("1", 0.9)], Decimal("0"))
    assert accepted == []
    assert len(rejected) == 1
