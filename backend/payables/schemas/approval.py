"""Pydantic schemas for approval workflow results."""
from pydantic import BaseModel


# ─── Escalation sweep stats ───

class EscalationSweepOut(BaseModel):
    candidates: int
    escalated: int
    skipped: int
    degraded_notifications: int
