"""Payment scoring: how desirable it is to schedule a payable in this batch.

Five normalised [0, 1] factors, weighted and summed. The due-date factor
measures scheduling slack (far-off due dates score higher), not urgency;
urgency is expressed through the priority factor and the date rules.
"""
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from payables.rules.approval_matrix import PaymentPriority

# ─── Factor weights ───
SCORE_WEIGHTS = {
    "due_date": 0.30,
    "supplier_reliability": 0.25,
    "early_payment_discount": 0.20,
    "cash_flow_impact": 0.15,
    "priority": 0.10,
}

DUE_DATE_HORIZON_DAYS = 30
CASH_FLOW_REFERENCE_AMOUNT = 100_000.0

PRIORITY_SCORES: dict[PaymentPriority, float] = {
    PaymentPriority.CRITICAL: 1.0,
    PaymentPriority.HIGH: 0.8,
    PaymentPriority.MEDIUM: 0.6,
    PaymentPriority.LOW: 0.4,
}


@dataclass(frozen=True)
class PayableSnapshot:
    """Read-only view of a payable plus the supplier facts the optimizer needs."""

    payable_id: uuid.UUID
    amount: Decimal | None
    due_date: date | None
    priority: PaymentPriority = PaymentPriority.LOW
    supplier_id: uuid.UUID | None = None
    reliability: float = 0.8
    early_payment_discount: float = 0.0
    description: str | None = None


@dataclass(frozen=True)
class OptimizationScore:
    payable: PayableSnapshot
    due_date_score: float
    supplier_reliability: float
    early_payment_discount: float
    cash_flow_score: float
    priority_score: float
    total: float


def to_amount(value) -> Decimal:
    """Decimal amount; floats go through str so binary noise never leaks in."""
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _clamp(value: float) -> float:
    return max(0.0, min(value, 1.0))


def due_date_score(due_date: date, today: date) -> float:
    days_until_due = (due_date - today).days
    return _clamp(days_until_due / DUE_DATE_HORIZON_DAYS)


def cash_flow_score(amount: Decimal | float) -> float:
    """1.0 for tiny payables, 0.0 at or above the reference amount."""
    return 1.0 - min(float(amount) / CASH_FLOW_REFERENCE_AMOUNT, 1.0)


def priority_score(priority: PaymentPriority) -> float:
    return PRIORITY_SCORES[PaymentPriority(priority)]


def score_payable(payable: PayableSnapshot, today: date) -> OptimizationScore:
    """Weighted desirability score; every sub-score is kept for inspection."""
    due = due_date_score(payable.due_date, today)
    reliability = _clamp(payable.reliability)
    discount = _clamp(payable.early_payment_discount)
    cash = cash_flow_score(payable.amount)
    prio = priority_score(payable.priority)

    total = (
        due * SCORE_WEIGHTS["due_date"]
        + reliability * SCORE_WEIGHTS["supplier_reliability"]
        + discount * SCORE_WEIGHTS["early_payment_discount"]
        + cash * SCORE_WEIGHTS["cash_flow_impact"]
        + prio * SCORE_WEIGHTS["priority"]
    )

    return OptimizationScore(
        payable=payable,
        due_date_score=due,
        supplier_reliability=reliability,
        early_payment_discount=discount,
        cash_flow_score=cash,
        priority_score=prio,
        total=total,
    )
