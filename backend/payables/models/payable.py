import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payables.db.base import Base, TimestampMixin, UUIDMixin


class PayableStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    OVERDUE = "OVERDUE"
    CANCELED = "CANCELED"
    IN_NEGOTIATION = "IN_NEGOTIATION"


class PayableApprovalStatus(str, enum.Enum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Payable(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "payables"

    supplier_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("suppliers.id"), nullable=True, index=True
    )
    invoice_reference: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount_due: Mapped[float | None] = mapped_column(Numeric(18, 2), nullable=True)  # CAD
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)  # PaymentCategory
    priority: Mapped[str | None] = mapped_column(String(20), nullable=True)  # PaymentPriority; None = derived
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=PayableStatus.PENDING.value
    )
    approval_status: Mapped[str | None] = mapped_column(
        String(20), nullable=True
    )  # not_required, pending, approved, rejected; None = no workflow yet
    approval_completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    supplier: Mapped["Supplier"] = relationship("Supplier", back_populates="payables")
    approval_steps: Mapped[list["ApprovalStep"]] = relationship(
        "ApprovalStep",
        back_populates="payable",
        cascade="all, delete-orphan",
        order_by="ApprovalStep.sequence_order",
    )
