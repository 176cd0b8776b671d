"""Supplier risk and reliability lookups."""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from payables.core.config import settings
from payables.core.exceptions import ValidationError
from payables.models.supplier import Supplier
from payables.rules.approval_matrix import RiskLevel

logger = logging.getLogger(__name__)

# Standard early-payment terms when the supplier has none negotiated.
STANDARD_DISCOUNT_LARGE = 0.02
STANDARD_DISCOUNT_SMALL = 0.01
STANDARD_DISCOUNT_THRESHOLD = Decimal("10000")


@dataclass(frozen=True)
class SupplierProfile:
    supplier_id: uuid.UUID | None
    risk_level: RiskLevel
    reliability: float
    early_payment_discount_rate: float | None = None

    def early_payment_discount(self, amount: Decimal | None) -> float:
        """Fraction of face value saved by paying early."""
        if self.early_payment_discount_rate is not None:
            return float(self.early_payment_discount_rate)
        if amount is not None and Decimal(amount) > STANDARD_DISCOUNT_THRESHOLD:
            return STANDARD_DISCOUNT_LARGE
        return STANDARD_DISCOUNT_SMALL


def default_profile(supplier_id: uuid.UUID | None = None) -> SupplierProfile:
    return SupplierProfile(
        supplier_id=supplier_id,
        risk_level=RiskLevel(settings.DEFAULT_SUPPLIER_RISK),
        reliability=settings.DEFAULT_SUPPLIER_RELIABILITY,
    )


def get_supplier_profile(db: Session, supplier_id: uuid.UUID | None) -> SupplierProfile:
    """Risk level, reliability and discount terms for a supplier.

    Unknown suppliers (or missing fields) fall back to the configured defaults.

    Raises:
        ValidationError: the supplier row holds a risk level RiskLevel does not know.
    """
    if supplier_id is None:
        return default_profile()

    supplier = db.execute(
        select(Supplier).where(Supplier.id == supplier_id, Supplier.deleted_at.is_(None))
    ).scalars().first()

    if supplier is None:
        logger.warning("Supplier %s not found; using default risk profile.", supplier_id)
        return default_profile(supplier_id)

    defaults = default_profile(supplier_id)
    try:
        risk_level = RiskLevel(supplier.risk_level) if supplier.risk_level else defaults.risk_level
    except ValueError as exc:
        raise ValidationError(
            f"Supplier {supplier_id} has unknown risk level '{supplier.risk_level}'.",
            field="risk_level",
        ) from exc

    return SupplierProfile(
        supplier_id=supplier_id,
        risk_level=risk_level,
        reliability=(
            float(supplier.reliability_score)
            if supplier.reliability_score is not None
            else defaults.reliability
        ),
        early_payment_discount_rate=(
            float(supplier.early_payment_discount_rate)
            if supplier.early_payment_discount_rate is not None
            else None
        ),
    )
