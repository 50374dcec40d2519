"""Execution — plans, step outcomes, checkpoints and rollback."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from golive_kernel.models.capability import CapabilityAction, RiskLevel
from golive_kernel.models.errors import Reason


class PlanStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLEDBACK = "rolledback"


class PlanStep(BaseModel):
    order: int
    capability_id: str
    capability_name: str
    action: CapabilityAction                # Always ENABLE or DISABLE, never TOGGLE
    rollbackable: bool = True


class ExecutionPlan(BaseModel):
    """An ordered sequence of state changes derived from one feasible simulation."""

    id: str
    name: str
    description: Optional[str] = None
    simulation_id: str
    steps: List[PlanStep]
    risk_level: RiskLevel
    created_by: str
    created_at: datetime
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    status: PlanStatus = PlanStatus.DRAFT


class StepStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class StepResult(BaseModel):
    order: int
    capability_id: str
    action: CapabilityAction
    status: StepStatus
    error: Optional[str] = None
    duration_ms: float = 0.0
    checkpoint_written: bool = False


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ROLLEDBACK = "rolledback"


class ExecutionResult(BaseModel):
    """Outcome of executing (or dry-running) an approved plan."""

    execution_id: str
    plan_id: str
    status: ExecutionStatus
    dry_run: bool = False
    success: bool = False
    actor: str
    steps: List[StepResult] = []
    steps_completed: int = 0
    steps_failed: int = 0
    steps_skipped: int = 0
    baseline_state: Dict[str, bool] = {}    # Enablement before the first step
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_ms: float = 0.0
    errors: List[Reason] = []
    warnings: List[str] = []
    rolled_back: bool = False


class Checkpoint(BaseModel):
    execution_id: str
    step_index: int
    captured_state: Dict[str, bool]
    created_at: datetime


class RollbackEligibility(BaseModel):
    execution_id: str
    can_rollback: bool
    reasons: List[Reason] = []
    checkpoint_step: Optional[int] = None
    rollbackable_steps: int = 0


class RollbackResult(BaseModel):
    execution_id: str
    applied: bool                           # False when already at the target state
    restored_from: str                      # "checkpoint" | "baseline"
    checkpoint_step: Optional[int] = None
    changes: List[dict] = []
    rolled_back_at: datetime
