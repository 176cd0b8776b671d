from payables.models.supplier import Supplier
from payables.models.payable import Payable, PayableApprovalStatus, PayableStatus
from payables.models.approval import ApprovalStatus, ApprovalStep
from payables.models.audit import AuditLog

__all__ = [
    "Supplier",
    "Payable", "PayableApprovalStatus", "PayableStatus",
    "ApprovalStatus", "ApprovalStep",
    "AuditLog",
]
