"""Approval matrix: which approval chain a payable needs.

Deterministic and side-effect free: the level depends only on the amount and
the category / supplier-risk / priority multipliers below. The workflow
engine persists the chain this module produces.
"""
import enum
import logging
from decimal import Decimal

logger = logging.getLogger(__name__)


class ApprovalLevel(str, enum.Enum):
    AUTOMATIC = "AUTOMATIC"
    SUPERVISOR = "SUPERVISOR"
    MANAGER = "MANAGER"
    DIRECTOR = "DIRECTOR"
    CFO = "CFO"
    CEO = "CEO"


class RiskLevel(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class PaymentCategory(str, enum.Enum):
    MATERIALS = "MATERIALS"
    LABOR = "LABOR"
    EQUIPMENT = "EQUIPMENT"
    SUBCONTRACTOR = "SUBCONTRACTOR"
    PROFESSIONAL_SERVICES = "PROFESSIONAL_SERVICES"
    PERMITS = "PERMITS"
    INSURANCE = "INSURANCE"
    EMERGENCY = "EMERGENCY"
    UTILITIES = "UTILITIES"
    OTHER = "OTHER"


class PaymentPriority(str, enum.Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# ─── Constant tables ───

# Upper bound (inclusive, CAD) of each level, in hierarchy order. None = unbounded.
LEVEL_THRESHOLDS_CAD: dict[ApprovalLevel, float | None] = {
    ApprovalLevel.AUTOMATIC: 1_000.00,
    ApprovalLevel.SUPERVISOR: 10_000.00,
    ApprovalLevel.MANAGER: 50_000.00,
    ApprovalLevel.DIRECTOR: 100_000.00,
    ApprovalLevel.CFO: 500_000.00,
    ApprovalLevel.CEO: None,
}

# Riskier suppliers have a smaller divisor, which inflates the effective amount.
RISK_MULTIPLIERS: dict[RiskLevel, float] = {
    RiskLevel.LOW: 1.0,
    RiskLevel.MEDIUM: 0.7,
    RiskLevel.HIGH: 0.5,
    RiskLevel.CRITICAL: 0.3,
}

CATEGORY_MULTIPLIERS: dict[PaymentCategory, float] = {
    PaymentCategory.MATERIALS: 1.0,
    PaymentCategory.LABOR: 1.2,
    PaymentCategory.EQUIPMENT: 0.8,
    PaymentCategory.SUBCONTRACTOR: 1.5,
    PaymentCategory.PROFESSIONAL_SERVICES: 1.1,
    PaymentCategory.PERMITS: 2.0,
    PaymentCategory.INSURANCE: 1.3,
    PaymentCategory.EMERGENCY: 2.0,
    PaymentCategory.UTILITIES: 1.4,
    PaymentCategory.OTHER: 1.0,
}

PRIORITY_MULTIPLIERS: dict[PaymentPriority, float] = {
    PaymentPriority.CRITICAL: 2.0,
    PaymentPriority.HIGH: 1.5,
    PaymentPriority.MEDIUM: 1.0,
    PaymentPriority.LOW: 1.0,
}

HIERARCHY: tuple[ApprovalLevel, ...] = tuple(LEVEL_THRESHOLDS_CAD)


# ─── Lookups ───

def level_threshold(level: ApprovalLevel) -> float | None:
    return LEVEL_THRESHOLDS_CAD[ApprovalLevel(level)]


def risk_multiplier(risk_level: RiskLevel) -> float:
    return RISK_MULTIPLIERS[RiskLevel(risk_level)]


def category_multiplier(category: PaymentCategory) -> float:
    return CATEGORY_MULTIPLIERS.get(PaymentCategory(category), 1.0)


def priority_multiplier(priority: PaymentPriority | None) -> float:
    if priority is None:
        return 1.0
    return PRIORITY_MULTIPLIERS[PaymentPriority(priority)]


def level_for_amount(amount: float | Decimal | None) -> ApprovalLevel:
    """Lowest level whose threshold covers ``amount`` (no adjustments applied)."""
    if amount is None or amount <= 0:
        return ApprovalLevel.AUTOMATIC
    value = float(amount)
    for level in HIERARCHY:
        threshold = LEVEL_THRESHOLDS_CAD[level]
        if threshold is None or value <= threshold:
            return level
    return ApprovalLevel.CEO


# ─── Resolver ───

def adjusted_amount(
    amount: float | Decimal,
    category: PaymentCategory,
    risk_level: RiskLevel,
    priority: PaymentPriority | None = None,
) -> float:
    """Amount after risk, category and priority adjustments."""
    value = float(amount) / risk_multiplier(risk_level)
    value *= category_multiplier(category)
    value *= priority_multiplier(priority)
    return value


def resolve_approval_level(
    amount: float | Decimal | None,
    category: PaymentCategory,
    risk_level: RiskLevel,
    priority: PaymentPriority | None = None,
) -> ApprovalLevel:
    """Return the approval level required for a payable.

    Examples:
        15,000 SUBCONTRACTOR, MEDIUM risk, HIGH priority
        → 15000 / 0.7 * 1.5 * 1.5 ≈ 48,214 → MANAGER
    """
    if amount is None or amount <= 0:
        return ApprovalLevel.AUTOMATIC

    effective = adjusted_amount(amount, category, risk_level, priority)
    level = level_for_amount(effective)
    logger.debug(
        "resolve_approval_level: amount=%s category=%s risk=%s priority=%s adjusted=%.2f → %s",
        amount, category, risk_level, priority, effective, level.value,
    )
    return level


# ─── Chain builder ───

def build_approval_chain(required_level: ApprovalLevel) -> list[ApprovalLevel]:
    """Ordered human approval levels up to and including ``required_level``.

    AUTOMATIC needs no human approval and yields an empty chain.
    """
    required_level = ApprovalLevel(required_level)
    if required_level is ApprovalLevel.AUTOMATIC:
        return []
    human_levels = HIERARCHY[1:]
    return list(human_levels[: human_levels.index(required_level) + 1])
