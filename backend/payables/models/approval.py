import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payables.db.base import Base, TimestampMixin, UUIDMixin


class ApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ESCALATED = "ESCALATED"
    SKIPPED = "SKIPPED"


class ApprovalStep(Base, UUIDMixin, TimestampMixin):
    """One level of the sequential approval chain for a payable.

    Inert record: status changes go through payables.services.approval_state.
    """

    __tablename__ = "approval_steps"
    __table_args__ = (
        UniqueConstraint("payable_id", "sequence_order", name="uq_approval_steps_payable_sequence"),
    )

    payable_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("payables.id", ondelete="CASCADE"), nullable=False, index=True
    )
    level: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # ApprovalLevel
    sequence_order: Mapped[int] = mapped_column(Integer, nullable=False)
    approver_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    approver_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approver_email: Mapped[str | None] = mapped_column(String(150), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value, index=True
    )  # PENDING, APPROVED, REJECTED, ESCALATED, SKIPPED
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notification_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    escalation_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    payable: Mapped["Payable"] = relationship("Payable", back_populates="approval_steps")
