"""Simulation — non-mutating feasibility and impact analysis."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from golive_kernel.models.capability import CapabilityAction, RiskLevel
from golive_kernel.models.errors import Reason
from golive_kernel.models.graph import BlastRadius


class SimulationAction(BaseModel):
    capability_id: str
    action: CapabilityAction


class ConflictType(str, Enum):
    UNKNOWN_CAPABILITY = "unknown_capability"
    MUTUAL_EXCLUSION = "mutual_exclusion"
    DEPENDENCY_MISSING = "dependency_missing"
    CIRCULAR_DEPENDENCY = "circular_dependency"
    DEPENDENTS_AFFECTED = "dependents_affected"
    HIGH_RISK = "high_risk"
    NO_CHANGE = "no_change"


class ConflictSeverity(str, Enum):
    ERROR = "error"       # Blocking
    WARNING = "warning"
    INFO = "info"


class Conflict(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ConflictType
    severity: ConflictSeverity
    affected_capabilities: List[str]
    message: str


class CapabilityImpact(BaseModel):
    capability_id: str
    name: str
    current_enabled: bool
    projected_enabled: bool
    direct: bool                      # Named by an action rather than pulled in by a cascade
    risk_level: RiskLevel


class SimulationResult(BaseModel):
    """Pure output of a simulation run; referenced by plans, never authoritative."""

    id: str
    actions: List[SimulationAction]
    feasible: bool
    risk_level: RiskLevel
    enable_order: List[str] = []
    disable_order: List[str] = []
    conflicts: List[Conflict] = []
    blast_radius: BlastRadius
    capability_impacts: List[CapabilityImpact] = []
    recommendations: List[str] = []
    rollback_steps: List[str] = []
    reasons: List[Reason] = []
    simulated_at: datetime


class StateDelta(BaseModel):
    capability_id: str
    before: bool
    after: bool


class StateComparison(BaseModel):
    before: Dict[str, bool]
    after: Dict[str, bool]
    delta: List[StateDelta] = []
    simulation_id: Optional[str] = None
