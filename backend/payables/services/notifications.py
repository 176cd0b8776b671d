"""Approval notifications: console mock by default (MAIL_ENABLED=False).

When MAIL_ENABLED is False, message content is written to the logs instead
of being sent. With MAIL_ENABLED=True messages go out over SMTP; transport
failures raise NotificationError so the caller can record degraded delivery.
"""
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from payables.core.config import settings
from payables.core.exceptions import NotificationError

logger = logging.getLogger(__name__)

APPROVAL_REQUESTED = "approval_requested"
APPROVAL_COMPLETED = "approval_completed"
APPROVAL_REJECTED = "approval_rejected"
APPROVAL_ESCALATED = "approval_escalated"


def _amount_str(payable) -> str:
    amount = getattr(payable, "amount_due", None)
    return f"${float(amount):,.2f}" if amount is not None else "N/A"


def _payable_label(payable) -> str:
    return getattr(payable, "invoice_reference", None) or str(payable.id)


def _deliver(kind: str, recipients: list[str], subject: str, body: str) -> None:
    recipients = [r for r in recipients if r]
    if not recipients:
        raise NotificationError(kind, [], f"No recipients for {kind} notification.")

    if not settings.MAIL_ENABLED:
        logger.info(
            "\n"
            "=== %s ===\n"
            "To: %s\n"
            "Subject: %s\n"
            "%s\n"
            "==============================",
            kind.upper().replace("_", " "),
            ", ".join(recipients),
            subject,
            body,
        )
        return

    message = EmailMessage()
    message["From"] = formataddr((settings.MAIL_FROM_NAME, settings.MAIL_FROM))
    message["To"] = ", ".join(recipients)
    message["Subject"] = subject
    message.set_content(body)

    try:
        with smtplib.SMTP(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS
        ) as smtp:
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send %s notification to %s: %s", kind, recipients, exc)
        raise NotificationError(kind, recipients, str(exc)) from exc

    logger.info("Sent %s notification to %s", kind, recipients)


# ─── Approval request ───

def send_approval_request(step, payable) -> None:
    """Ask the step's approver to review the payable."""
    subject = f"Approval Required: Payable {_payable_label(payable)}: {_amount_str(payable)}"
    body = (
        f"Dear {step.approver_name or step.approver_id},\n\n"
        f"A payable requires your approval at level {step.level} "
        f"(step {step.sequence_order}).\n"
        f"Amount: {_amount_str(payable)}\n"
        f"Due date: {getattr(payable, 'due_date', None) or 'N/A'}\n"
        f"Description: {getattr(payable, 'description', None) or '-'}\n"
    )
    _deliver(APPROVAL_REQUESTED, [step.approver_email], subject, body)


# ─── Workflow completed ───

def send_approval_completed(payable, steps: list) -> None:
    """Tell finance the payable cleared every approval level."""
    subject = f"Payment Approved: Payable {_payable_label(payable)}"
    trail = "\n".join(
        f"  {s.sequence_order}. {s.level}: {s.status} by {s.decided_by or '-'}" for s in steps
    )
    body = (
        f"Payable {_payable_label(payable)} for {_amount_str(payable)} has been fully approved "
        f"and is ready for payment processing.\n\nApproval trail:\n{trail}\n"
    )
    _deliver(APPROVAL_COMPLETED, [settings.FINANCE_TEAM_EMAIL], subject, body)


# ─── Workflow rejected ───

def send_approval_rejected(payable, rejected_step) -> None:
    subject = f"Payment Rejected: Payable {_payable_label(payable)}"
    body = (
        f"Payable {_payable_label(payable)} for {_amount_str(payable)} was rejected at level "
        f"{rejected_step.level} by {rejected_step.decided_by}.\n"
        f"Comments: {rejected_step.comments or '-'}\n"
    )
    _deliver(APPROVAL_REJECTED, [settings.FINANCE_TEAM_EMAIL], subject, body)


# ─── Escalation ───

def send_approval_escalated(step, payable, reason: str, notify_approver: bool = True) -> None:
    """Alert finance, and the step's approver when the step is the one awaiting a decision."""
    subject = f"ESCALATED: Approval overdue for Payable {_payable_label(payable)}"
    body = (
        f"The approval at level {step.level} (step {step.sequence_order}) assigned to "
        f"{step.approver_name or step.approver_id} has been escalated.\n"
        f"Reason: {reason}\n"
        f"Amount: {_amount_str(payable)}\n"
    )
    recipients = [settings.FINANCE_TEAM_EMAIL]
    if notify_approver:
        recipients.insert(0, step.approver_email)
    _deliver(APPROVAL_ESCALATED, recipients, subject, body)
