"""Payment date assignment: when and how each selected payable is paid.

Priority picks a base date, the banking calendar rolls it forward to a
business day, and the amount tier picks the transfer rail.
"""
import enum
import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from payables.rules.approval_matrix import PaymentPriority
from payables.rules.business_calendar import BusinessCalendar
from payables.rules.payment_scoring import OptimizationScore, to_amount

CENTS = Decimal("0.01")

# Discount above which MEDIUM-priority payables are paid early to capture it.
EARLY_PAYMENT_DISCOUNT_TRIGGER = 0.01

WIRE_TRANSFER_MIN = Decimal("100000")
ACH_TRANSFER_MIN = Decimal("10000")


class PaymentMethod(str, enum.Enum):
    WIRE_TRANSFER = "WIRE_TRANSFER"
    ACH_TRANSFER = "ACH_TRANSFER"
    INTERAC_E_TRANSFER = "INTERAC_E_TRANSFER"


# Flat fee, or a rate applied to the amount for ACH.
PROCESSING_FEES: dict[PaymentMethod, Decimal] = {
    PaymentMethod.WIRE_TRANSFER: Decimal("25.00"),
    PaymentMethod.ACH_TRANSFER: Decimal("0.001"),
    PaymentMethod.INTERAC_E_TRANSFER: Decimal("1.50"),
}

SETTLEMENT_BUSINESS_DAYS: dict[PaymentMethod, int] = {
    PaymentMethod.WIRE_TRANSFER: 0,
    PaymentMethod.ACH_TRANSFER: 1,
    PaymentMethod.INTERAC_E_TRANSFER: 0,
}


@dataclass(frozen=True)
class OptimizedPayment:
    payable_id: uuid.UUID
    supplier_id: uuid.UUID | None
    amount: Decimal
    priority: PaymentPriority
    original_due_date: date
    payment_date: date
    payment_method: PaymentMethod
    optimization_score: float
    estimated_savings: Decimal
    processing_fee: Decimal
    settlement_date: date

    @property
    def days_shifted(self) -> int:
        """Negative when paid before the due date."""
        return (self.payment_date - self.original_due_date).days


def base_payment_date(
    priority: PaymentPriority,
    due_date: date,
    early_payment_discount: float,
    today: date,
) -> date:
    priority = PaymentPriority(priority)
    if priority is PaymentPriority.CRITICAL:
        candidate = today + timedelta(days=1)
    elif priority is PaymentPriority.HIGH:
        candidate = today + timedelta(days=2)
    elif priority is PaymentPriority.MEDIUM:
        if early_payment_discount > EARLY_PAYMENT_DISCOUNT_TRIGGER:
            candidate = today + timedelta(days=3)
        else:
            candidate = due_date - timedelta(days=5)
    else:
        candidate = due_date - timedelta(days=1)
    # Never schedule into the past.
    return max(candidate, today)


def choose_payment_method(amount: Decimal) -> PaymentMethod:
    if amount > WIRE_TRANSFER_MIN:
        return PaymentMethod.WIRE_TRANSFER
    if amount > ACH_TRANSFER_MIN:
        return PaymentMethod.ACH_TRANSFER
    return PaymentMethod.INTERAC_E_TRANSFER


def estimate_processing_fee(amount: Decimal, method: PaymentMethod) -> Decimal:
    fee = PROCESSING_FEES[method]
    if method is PaymentMethod.ACH_TRANSFER:
        fee = amount * fee
    return fee.quantize(CENTS, rounding=ROUND_HALF_UP)


def estimate_savings(amount: Decimal, discount_rate: float) -> Decimal:
    return (amount * Decimal(str(discount_rate))).quantize(CENTS, rounding=ROUND_HALF_UP)


def assign_payment_date(
    score: OptimizationScore,
    calendar: BusinessCalendar,
    today: date,
) -> OptimizedPayment:
    payable = score.payable
    amount = to_amount(payable.amount)

    payment_date = calendar.next_business_day(
        base_payment_date(payable.priority, payable.due_date, score.early_payment_discount, today)
    )
    method = choose_payment_method(amount)

    return OptimizedPayment(
        payable_id=payable.payable_id,
        supplier_id=payable.supplier_id,
        amount=amount,
        priority=PaymentPriority(payable.priority),
        original_due_date=payable.due_date,
        payment_date=payment_date,
        payment_method=method,
        optimization_score=score.total,
        estimated_savings=estimate_savings(amount, score.early_payment_discount),
        processing_fee=estimate_processing_fee(amount, method),
        settlement_date=calendar.add_business_days(payment_date, SETTLEMENT_BUSINESS_DAYS[method]),
    )
