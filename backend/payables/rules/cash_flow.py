"""Cash-flow constraint: greedy selection of scored payables under a budget.

Single pass in score order: a payable that does not fit the remaining budget
is skipped for good, even if a smaller one later in the list would have used
the leftover. This is a deliberate approximation (deterministic, O(n log n)),
not a knapsack optimum.
"""
import logging
from decimal import Decimal

from payables.rules.payment_scoring import OptimizationScore, to_amount

logger = logging.getLogger(__name__)


def rank_by_score(scores: list[OptimizationScore]) -> list[OptimizationScore]:
    """Highest score first; ties keep their input order."""
    return sorted(scores, key=lambda s: s.total, reverse=True)


def select_within_cash_flow(
    scores: list[OptimizationScore],
    available_cash_flow: Decimal,
) -> tuple[list[OptimizationScore], list[OptimizationScore]]:
    """Return (accepted, rejected) in ranked order."""
    remaining = Decimal(available_cash_flow)
    accepted: list[OptimizationScore] = []
    rejected: list[OptimizationScore] = []

    for score in rank_by_score(scores):
        amount = to_amount(score.payable.amount)
        if amount <= remaining:
            accepted.append(score)
            remaining -= amount
        else:
            rejected.append(score)
            logger.debug(
                "Payable %s excluded by cash-flow limit. Required: $%s, available: $%s",
                score.payable.payable_id, amount, remaining,
            )

    return accepted, rejected
