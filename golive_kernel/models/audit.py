"""Audit Event — one immutable record per decision or action."""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel


class AuditAction(str, Enum):
    SIMULATION_RUN = "simulation_run"
    PLAN_CREATED = "plan_created"
    PLAN_REJECTED = "plan_rejected"
    PLAN_APPROVED = "plan_approved"
    EXECUTION_STARTED = "execution_started"
    EXECUTION_COMPLETED = "execution_completed"
    EXECUTION_FAILED = "execution_failed"
    EXECUTION_CANCELLED = "execution_cancelled"
    EXECUTION_REJECTED = "execution_rejected"
    STEP_COMPLETED = "step_completed"
    STEP_FAILED = "step_failed"
    READINESS_OVERRIDE = "readiness_override"
    ROLLBACK_COMPLETED = "rollback_completed"
    ROLLBACK_FAILED = "rollback_failed"


class AuditEvent(BaseModel):
    id: str
    action: str                             # AuditAction value; free-form actions are allowed
    description: str
    actor: str
    success: bool
    timestamp: datetime
    metadata: dict = {}

    # INTEGRITY
    signature: str = ""
    prior_event_hash: Optional[str] = None


class ActivitySummary(BaseModel):
    window_hours: float
    total_events: int
    successful_events: int
    failed_events: int
    by_action: Dict[str, int] = {}
    by_actor: Dict[str, int] = {}
