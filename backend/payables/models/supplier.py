from datetime import datetime

from sqlalchemy import Boolean, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payables.db.base import Base, TimestampMixin, UUIDMixin


class Supplier(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    risk_level: Mapped[str | None] = mapped_column(String(20), nullable=True)  # LOW, MEDIUM, HIGH, CRITICAL
    reliability_score: Mapped[float | None] = mapped_column(Numeric(5, 4), nullable=True)  # 0.0-1.0
    # Negotiated early-payment discount (fraction, e.g. 0.02 = 2%); None = standard terms
    early_payment_discount_rate: Mapped[float | None] = mapped_column(Numeric(5, 4), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    payables: Mapped[list["Payable"]] = relationship("Payable", back_populates="supplier")
