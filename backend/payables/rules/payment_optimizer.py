"""Payment schedule optimizer: one batch run over a snapshot of payables.

Pipeline: drop malformed items → score → greedy cash-flow selection → assign
payment dates → batch metrics. Pure computation: no I/O, no mutation of the
payables, safe to run concurrently over overlapping snapshots.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from payables.core.exceptions import ValidationError
from payables.rules.approval_matrix import PaymentPriority
from payables.rules.business_calendar import BusinessCalendar, get_default_calendar
from payables.rules.cash_flow import select_within_cash_flow
from payables.rules.payment_dates import OptimizedPayment, assign_payment_date
from payables.rules.payment_scoring import PayableSnapshot, score_payable, to_amount

logger = logging.getLogger(__name__)


# ─── Result dataclasses ───

@dataclass
class OptimizationMetrics:
    total_savings: Decimal
    total_optimized_amount: Decimal
    total_original_amount: Decimal
    optimization_rate: float
    average_date_shift_days: float
    payments_optimized: int
    payments_excluded: int


@dataclass
class OptimizedPaymentSchedule:
    payments: list[OptimizedPayment]
    total_optimized_amount: Decimal
    total_savings: Decimal
    metrics: OptimizationMetrics
    available_cash_flow: Decimal
    remaining_cash_flow: Decimal
    excluded_payable_ids: list[uuid.UUID] = field(default_factory=list)
    malformed_payable_ids: list[uuid.UUID] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ─── Helpers ───

def is_well_formed(payable: PayableSnapshot) -> bool:
    """Amount positive, due date present, priority one the scorer knows."""
    if payable.amount is None or payable.due_date is None:
        return False
    try:
        PaymentPriority(payable.priority)
        return to_amount(payable.amount) > 0
    except (InvalidOperation, TypeError, ValueError):
        return False


def calculate_metrics(
    payments: list[OptimizedPayment],
    payables: list[PayableSnapshot],
) -> OptimizationMetrics:
    total_savings = sum((p.estimated_savings for p in payments), Decimal("0"))
    total_optimized = sum((p.amount for p in payments), Decimal("0"))
    total_original = sum(
        (to_amount(p.amount) for p in payables if is_well_formed(p)), Decimal("0")
    )

    optimization_rate = len(payments) / len(payables) if payables else 0.0
    average_shift = (
        sum(p.days_shifted for p in payments) / len(payments) if payments else 0.0
    )

    return OptimizationMetrics(
        total_savings=total_savings,
        total_optimized_amount=total_optimized,
        total_original_amount=total_original,
        optimization_rate=optimization_rate,
        average_date_shift_days=round(average_shift, 2),
        payments_optimized=len(payments),
        payments_excluded=len(payables) - len(payments),
    )


# ─── Entry point ───

def optimize_payment_schedule(
    payables: list[PayableSnapshot],
    available_cash_flow: Decimal,
    calendar: BusinessCalendar | None = None,
    today: date | None = None,
) -> OptimizedPaymentSchedule:
    """Build a cash-flow-respecting disbursement schedule for ``payables``.

    Malformed payables (missing amount or due date, non-positive amount,
    unknown priority) are excluded and counted; they never abort the batch.
    """
    if available_cash_flow is None or Decimal(available_cash_flow) < 0:
        raise ValidationError(
            "available_cash_flow must be a non-negative amount.", field="available_cash_flow"
        )
    available = Decimal(available_cash_flow)
    calendar = calendar or get_default_calendar()
    today = today or date.today()

    logger.info(
        "Starting payment optimization for %d payables with cash flow limit of $%s",
        len(payables), available,
    )

    valid: list[PayableSnapshot] = []
    malformed: list[uuid.UUID] = []
    for payable in payables:
        if is_well_formed(payable):
            valid.append(payable)
        else:
            malformed.append(payable.payable_id)
            logger.warning(
                "Payable %s excluded from schedule: malformed (amount=%s, due_date=%s, priority=%s)",
                payable.payable_id, payable.amount, payable.due_date, payable.priority,
            )

    scores = [score_payable(p, today) for p in valid]
    accepted, rejected = select_within_cash_flow(scores, available)
    payments = [assign_payment_date(s, calendar, today) for s in accepted]
    metrics = calculate_metrics(payments, payables)

    schedule = OptimizedPaymentSchedule(
        payments=payments,
        total_optimized_amount=metrics.total_optimized_amount,
        total_savings=metrics.total_savings,
        metrics=metrics,
        available_cash_flow=available,
        remaining_cash_flow=available - metrics.total_optimized_amount,
        excluded_payable_ids=malformed + [s.payable.payable_id for s in rejected],
        malformed_payable_ids=malformed,
    )

    logger.info(
        "Payment optimization completed. Optimized %d payments (%d excluded) with total savings of $%s",
        metrics.payments_optimized, metrics.payments_excluded, metrics.total_savings,
    )
    return schedule
