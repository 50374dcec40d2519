"""Capability — a toggleable unit of system behavior and its registry views."""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, Field


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    @classmethod
    def highest(cls, levels) -> "RiskLevel":
        """Return the most severe level in `levels` (LOW when empty)."""
        result = cls.LOW
        for level in levels:
            if level.rank > result.rank:
                result = level
        return result


_RISK_RANK = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


class CapabilityDomain(str, Enum):
    CONTENT = "content"
    AI = "ai"
    SEO = "seo"
    LOCALIZATION = "localization"
    GROWTH = "growth"
    GOVERNANCE = "governance"
    AUTONOMY = "autonomy"
    OPERATIONS = "operations"
    PLATFORM = "platform"


class CapabilityAction(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"
    TOGGLE = "toggle"


class Capability(BaseModel):
    """A capability definition plus its live enablement flag."""

    id: str
    name: str
    description: str = ""
    domain: CapabilityDomain
    risk_level: RiskLevel = RiskLevel.LOW
    depends_on: Set[str] = Field(default_factory=set)      # Hard dependencies
    conflicts_with: Set[str] = Field(default_factory=set)  # Mutually exclusive capabilities
    flag: Optional[str] = None                             # Environment flag, e.g. ENABLE_RBAC
    enabled: bool = False


class DomainGroup(BaseModel):
    domain: CapabilityDomain
    capabilities: List[Capability]


class RegistrySnapshot(BaseModel):
    """Deep copy of the registry at a point in time, for audit and diffing."""

    timestamp: datetime
    capabilities: List[Capability]

    def enablement(self) -> dict:
        return {c.id: c.enabled for c in self.capabilities}
