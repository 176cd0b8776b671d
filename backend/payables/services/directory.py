"""Approver directory: who signs off at each approval level.

Backed by the APPROVER_DIRECTORY setting, with a built-in directory for the
levels it does not override.
"""
import logging
from dataclasses import dataclass

from payables.core.config import settings
from payables.core.exceptions import ValidationError
from payables.rules.approval_matrix import ApprovalLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Approver:
    id: str
    name: str
    email: str


DEFAULT_DIRECTORY: dict[ApprovalLevel, Approver] = {
    ApprovalLevel.SUPERVISOR: Approver("1001", "Site Supervisor", "supervisor@yourcompany.com"),
    ApprovalLevel.MANAGER: Approver("1002", "Project Manager", "manager@yourcompany.com"),
    ApprovalLevel.DIRECTOR: Approver("1003", "Operations Director", "director@yourcompany.com"),
    ApprovalLevel.CFO: Approver("1004", "Chief Financial Officer", "cfo@yourcompany.com"),
    ApprovalLevel.CEO: Approver("1005", "Chief Executive Officer", "ceo@yourcompany.com"),
}


def get_approver_for_level(level: ApprovalLevel) -> Approver:
    """Resolve the approver assigned to ``level``.

    Raises:
        ValidationError: when the level has no approver (AUTOMATIC, or a
            misconfigured APPROVER_DIRECTORY entry).
    """
    level = ApprovalLevel(level)
    override = settings.APPROVER_DIRECTORY.get(level.value)
    if override:
        try:
            return Approver(
                id=str(override["id"]),
                name=override.get("name", level.value.title()),
                email=override["email"],
            )
        except KeyError as exc:
            raise ValidationError(
                f"APPROVER_DIRECTORY entry for {level.value} is missing {exc}.",
                field="APPROVER_DIRECTORY",
            ) from exc

    approver = DEFAULT_DIRECTORY.get(level)
    if approver is None:
        raise ValidationError(f"No approver configured for level {level.value}.", field="level")
    return approver
