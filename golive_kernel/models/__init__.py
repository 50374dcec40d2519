"""Go-Live Control Plane data models."""

from golive_kernel.models.audit import ActivitySummary, AuditAction, AuditEvent
from golive_kernel.models.capability import (
    Capability,
    CapabilityAction,
    CapabilityDomain,
    DomainGroup,
    RegistrySnapshot,
    RiskLevel,
)
from golive_kernel.models.config import ControlPlaneConfig
from golive_kernel.models.errors import Reason
from golive_kernel.models.execution import (
    Checkpoint,
    ExecutionPlan,
    ExecutionResult,
    ExecutionStatus,
    PlanStatus,
    PlanStep,
    RollbackEligibility,
    RollbackResult,
    StepResult,
    StepStatus,
)
from golive_kernel.models.graph import (
    BlastRadius,
    DependencyValidation,
    InvalidStateIssue,
    InvalidStateReport,
    MissingDependency,
)
from golive_kernel.models.readiness import (
    GoLiveReadiness,
    GoLiveRecommendation,
    ProbeInfo,
    ProbeOutcome,
    ProbeResult,
    ProbeStatus,
    ProbeSummary,
    QuickHealth,
    ReadinessSnapshot,
    ReadinessStatus,
)
from golive_kernel.models.simulation import (
    CapabilityImpact,
    Conflict,
    ConflictSeverity,
    ConflictType,
    SimulationAction,
    SimulationResult,
    StateComparison,
    StateDelta,
)

__all__ = [
    "ActivitySummary",
    "AuditAction",
    "AuditEvent",
    "BlastRadius",
    "Capability",
    "CapabilityAction",
    "CapabilityDomain",
    "CapabilityImpact",
    "Checkpoint",
    "Conflict",
    "ConflictSeverity",
    "ConflictType",
    "ControlPlaneConfig",
    "DependencyValidation",
    "DomainGroup",
    "ExecutionPlan",
    "ExecutionResult",
    "ExecutionStatus",
    "GoLiveReadiness",
    "GoLiveRecommendation",
    "InvalidStateIssue",
    "InvalidStateReport",
    "MissingDependency",
    "PlanStatus",
    "PlanStep",
    "ProbeInfo",
    "ProbeOutcome",
    "ProbeResult",
    "ProbeStatus",
    "ProbeSummary",
    "QuickHealth",
    "ReadinessSnapshot",
    "ReadinessStatus",
    "Reason",
    "RegistrySnapshot",
    "RiskLevel",
    "RollbackEligibility",
    "RollbackResult",
    "SimulationAction",
    "SimulationResult",
    "StateComparison",
    "StateDelta",
    "StepResult",
    "StepStatus",
]
