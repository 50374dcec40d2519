"""Readiness — probe outcomes and aggregated environment health."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProbeStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class ReadinessStatus(str, Enum):
    READY = "READY"
    DEGRADED = "DEGRADED"
    BLOCKED = "BLOCKED"


class GoLiveRecommendation(str, Enum):
    PROCEED = "PROCEED"
    PROCEED_WITH_CAUTION = "PROCEED_WITH_CAUTION"
    DO_NOT_PROCEED = "DO_NOT_PROCEED"


class ProbeOutcome(BaseModel):
    """What a probe's run() returns."""

    status: ProbeStatus
    duration_ms: float = Field(ge=0, default=0.0)
    message: str = ""


class ProbeInfo(BaseModel):
    id: str
    category: str
    blocking: bool
    quick: bool
    timeout_ms: int


class ProbeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    probe_id: str
    category: str
    status: ProbeStatus
    duration_ms: float
    message: str = ""
    blocking: bool = True
    timed_out: bool = False


class ProbeSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    passed: int = 0
    warned: int = 0
    failed: int = 0


class ReadinessSnapshot(BaseModel):
    """One aggregated evaluation. Replaced, never updated."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    status: ReadinessStatus
    probe_results: List[ProbeResult] = []
    summary: ProbeSummary = ProbeSummary()
    blocking_issues: List[str] = []         # Probe ids that failed and block
    warnings: List[str] = []                # Probe ids that warned or failed non-blocking
    recommendations: List[str] = []
    categories: Optional[List[str]] = None  # None = all categories


class QuickHealth(BaseModel):
    healthy: bool
    status: ReadinessStatus
    message: str
    checked_at: datetime


class GoLiveReadiness(BaseModel):
    can_go_live: bool
    status: ReadinessStatus
    score: int = Field(ge=0, le=100)
    recommendation: GoLiveRecommendation
    blocking_issues: List[str] = []
    warnings: List[str] = []
    snapshot: ReadinessSnapshot
