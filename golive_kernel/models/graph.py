"""Dependency graph analysis results."""

from typing import List, Optional

from pydantic import BaseModel

from golive_kernel.models.capability import RiskLevel


class MissingDependency(BaseModel):
    capability_id: str
    missing_id: str


class DependencyValidation(BaseModel):
    valid: bool
    missing_dependencies: List[MissingDependency] = []
    circular_dependencies: List[List[str]] = []   # Each cycle closes on its first id


class InvalidStateIssue(BaseModel):
    capability_id: str
    disabled_dependency: str
    message: str


class InvalidStateReport(BaseModel):
    has_invalid_states: bool
    issues: List[InvalidStateIssue] = []


class BlastRadius(BaseModel):
    """Capabilities affected by changing one capability's state."""

    capability_id: Optional[str] = None     # None for a combined batch radius
    direct_impact: List[str] = []
    transitive_impact: List[str] = []
    total_affected: int = 0
    risk_level: RiskLevel = RiskLevel.LOW
