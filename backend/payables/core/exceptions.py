"""Typed errors raised by the approval engine and the payment optimizer.

Every error carries a machine-readable ``code`` plus the structured data a
caller needs to react, so callers catch by type instead of parsing messages.

    PayablesError
    +-- ValidationError      VALIDATION_ERROR   bad input, rejected before any write
    +-- NotFoundError        NOT_FOUND          unknown step / payable id
    +-- AuthorizationError   NOT_AUTHORIZED     decision from a non-assigned approver
    +-- ConflictError        CONFLICT           step already decided / escalated / not current
    +-- NotificationError    NOTIFICATION_FAILED  sink could not deliver a message

``DeliveryDegraded`` is not raised: it is a warning returned next to a
successful transition when a NotificationError was swallowed.
"""


class PayablesError(Exception):
    """Base exception for all payables engine errors."""

    code: str = "PAYABLES_ERROR"


class ValidationError(PayablesError):
    """Input rejected before any state change."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(PayablesError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type} {entity_id} not found")


class AuthorizationError(PayablesError):
    """Decision submitted by someone other than the assigned approver."""

    code: str = "NOT_AUTHORIZED"

    def __init__(self, step_id, approver_id: str, assigned_approver_id: str):
        self.step_id = str(step_id)
        self.approver_id = approver_id
        self.assigned_approver_id = assigned_approver_id
        super().__init__(
            f"User {approver_id} is not the assigned approver for step {step_id}"
        )


class ConflictError(PayablesError):
    """Transition refused because the step is no longer in the expected state.

    Raised both by the up-front status check and by the guarded UPDATE when a
    concurrent writer got there first.
    """

    code: str = "CONFLICT"

    def __init__(self, entity_id, current_status: str | None, message: str):
        self.entity_id = str(entity_id)
        self.current_status = current_status
        super().__init__(message)


class NotificationError(PayablesError):
    """The notification sink could not deliver a message."""

    code: str = "NOTIFICATION_FAILED"

    def __init__(self, kind: str, recipients: list[str], message: str):
        self.kind = kind
        self.recipients = list(recipients)
        super().__init__(message)


class DeliveryDegraded(UserWarning):
    """A notification failed; the state transition it belonged to still committed."""

    code: str = "DELIVERY_DEGRADED"

    def __init__(self, kind: str, entity_id, error: str):
        self.kind = kind
        self.entity_id = str(entity_id)
        self.error = error
        super().__init__(f"{kind} notification for {entity_id} not delivered: {error}")
