"""Audit trail for approval workflows.

Every step transition and workflow outcome is recorded as one append-only
row with JSON snapshots of the state before and after. Rows are flushed, not
committed: they land in the same transaction as the transition they record,
so a rolled-back transition leaves no audit entry behind.
"""
import json
import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from payables.models.audit import AuditLog

logger = logging.getLogger(__name__)


def _to_json(state: Any | None) -> str | None:
    # Decimals, datetimes and UUIDs in snapshots are stored as their str().
    return json.dumps(state, default=str) if state is not None else None


def record(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: uuid.UUID | str,
    actor_id: str | None = None,
    before: Any | None = None,
    after: Any | None = None,
    notes: str | None = None,
) -> AuditLog:
    """Append one audit entry for an approval step or payable.

    ``actor_id`` is the deciding approver; None marks a system action such
    as workflow creation or a sweep escalation.
    """
    entry = AuditLog(
        actor_id=str(actor_id) if actor_id else None,
        action=action,
        entity_type=entity_type,
        entity_id=uuid.UUID(str(entity_id)),
        before_state=_to_json(before),
        after_state=_to_json(after),
        notes=notes,
    )
    db.add(entry)
    db.flush()
    logger.debug(
        "Audit: %s %s/%s by %s", action, entity_type, entity_id, actor_id or "system"
    )
    return entry


def get_trail(db: Session, entity_id: uuid.UUID) -> list[AuditLog]:
    """Audit entries for one step or payable, oldest first."""
    stmt = (
        select(AuditLog)
        .where(AuditLog.entity_id == entity_id)
        .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
    )
    return list(db.execute(stmt).scalars().all())
