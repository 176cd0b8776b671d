"""Pydantic schemas for serialising optimized payment schedules."""
import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from payables.rules.approval_matrix import PaymentPriority
from payables.rules.payment_dates import PaymentMethod


# ─── Single payment ───

class OptimizedPaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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
    days_shifted: int


# ─── Batch metrics ───

class OptimizationMetricsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_savings: Decimal
    total_optimized_amount: Decimal
    total_original_amount: Decimal
    optimization_rate: float
    average_date_shift_days: float
    payments_optimized: int
    payments_excluded: int


# ─── Whole schedule ───

class PaymentScheduleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payments: list[OptimizedPaymentOut]
    total_optimized_amount: Decimal
    total_savings: Decimal
    metrics: OptimizationMetricsOut
    available_cash_flow: Decimal
    remaining_cash_flow: Decimal
    excluded_payable_ids: list[uuid.UUID]
    malformed_payable_ids: list[uuid.UUID]
    generated_at: datetime
