"""
Go-Live Control Plane API — FastAPI endpoints.

Exposes the control plane's functionality via a REST API for:
- Readiness checks and the go-live verdict
- Capability inspection and dependency validation
- Rollout simulation
- Plan creation, approval and execution
- Execution rollback
- Audit queries

Every route except /status answers 503 while ENABLE_GLCP is off.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from golive_kernel.control_plane import ControlPlane
from golive_kernel.errors import (
    ConflictError,
    ControlPlaneDisabled,
    ControlPlaneError,
    NotFoundError,
    ValidationError,
)
from golive_kernel.models.capability import CapabilityDomain, RiskLevel
from golive_kernel.models.config import ControlPlaneConfig
from golive_kernel.models.execution import ExecutionStatus, PlanStatus
from golive_kernel.models.simulation import SimulationAction


# --- Request/Response Models ---

class SimulateRequest(BaseModel):
    actions: List[SimulationAction]
    actor: str = "api_user"


class ActorRequest(BaseModel):
    actor: str = "api_user"


class CompareRequest(BaseModel):
    actions: List[SimulationAction]


class PlanCreateRequest(BaseModel):
    simulation_id: str
    name: str
    created_by: str = "api_user"
    description: Optional[str] = None
    expires_at: Optional[datetime] = None


class PlanApproveRequest(BaseModel):
    approver: str


class ExecuteRequest(BaseModel):
    dry_run: bool = False
    actor: str = "api_user"
    force: bool = False


class RollbackRequest(BaseModel):
    actor: str = "api_user"
    reason: str = ""


_STATUS_CODES = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (ValidationError, 422),
    (ControlPlaneDisabled, 503),
)


def _status_code(exc: ControlPlaneError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


# --- Application Factory ---

def create_app(
    control_plane: Optional[ControlPlane] = None,
    config: Optional[ControlPlaneConfig] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Go-Live Control Plane API",
        description="Dependency-aware capability rollout orchestration",
        version="0.1.0",
    )

    cp = control_plane or ControlPlane(config=config)

    # Store components on app state for access in endpoints
    app.state.control_plane = cp

    @app.exception_handler(ControlPlaneError)
    async def control_plane_error_handler(request: Request, exc: ControlPlaneError):
        return JSONResponse(status_code=_status_code(exc), content=exc.to_dict())

    # === READINESS ===

    @app.get("/status")
    async def get_status():
        """Quick health. Not gated by ENABLE_GLCP."""
        status = await cp.status()
        code = 200 if status["health"]["healthy"] else 503
        return JSONResponse(status_code=code, content=status)

    @app.get("/checks")
    async def get_checks(fresh: bool = False, categories: Optional[str] = None):
        """Full readiness snapshot."""
        wanted = [c.strip() for c in categories.split(",") if c.strip()] if categories else None
        snapshot = await cp.evaluate_readiness(use_cache=not fresh, categories=wanted)
        return snapshot.model_dump(mode="json")

    @app.get("/checks/probes")
    def get_probes():
        """Registered probes."""
        return [p.model_dump(mode="json") for p in cp.get_available_probes()]

    @app.get("/checks/{category}")
    async def get_category_checks(category: str):
        """Readiness for one probe category."""
        snapshot = await cp.evaluate_category(category)
        return snapshot.model_dump(mode="json")

    @app.get("/go-live-check")
    async def go_live_check(fresh: bool = False):
        """Go/no-go verdict."""
        readiness = await cp.get_go_live_readiness(use_cache=not fresh)
        return readiness.model_dump(mode="json")

    @app.get("/dashboard")
    async def get_dashboard():
        """Executive summary."""
        return await cp.dashboard()

    # === CAPABILITIES ===

    @app.get("/capabilities")
    def list_capabilities(
        domain: Optional[CapabilityDomain] = None,
        enabled: Optional[bool] = None,
        risk: Optional[RiskLevel] = None,
    ):
        """All capabilities, optionally filtered."""
        caps = cp.list_capabilities(domain=domain, enabled=enabled, risk_level=risk)
        return [c.model_dump(mode="json") for c in caps]

    @app.get("/capabilities/domains")
    def get_domains():
        """Capabilities grouped by domain."""
        return [g.model_dump(mode="json") for g in cp.group_by_domain()]

    @app.get("/capabilities/actions/safe-to-enable")
    def get_safe_to_enable():
        """Disabled capabilities whose dependencies are all enabled."""
        return {"capability_ids": cp.get_safe_to_enable()}

    @app.get("/capabilities/{capability_id}")
    def get_capability(capability_id: str):
        """One capability with its blast radius."""
        cap = cp.get_capability(capability_id)
        return {
            "capability": cap.model_dump(mode="json"),
            "blast_radius": cp.calculate_blast_radius(capability_id).model_dump(mode="json"),
        }

    @app.get("/dependencies/validate")
    def validate_dependencies():
        """Missing dependencies, cycles and invalid enabled states."""
        return {
            "validation": cp.validate_dependencies().model_dump(mode="json"),
            "invalid_states": cp.detect_invalid_states().model_dump(mode="json"),
        }

    @app.get("/snapshot")
    def get_snapshot():
        """Deep copy of the registry."""
        return cp.snapshot().model_dump(mode="json")

    # === SIMULATION ===

    @app.post("/simulate")
    def simulate(req: SimulateRequest):
        """Simulate one or more simultaneous actions."""
        return cp.simulate(req.actions, actor=req.actor).model_dump(mode="json")

    @app.post("/simulate/enable/{capability_id}")
    def simulate_enable(capability_id: str, req: Optional[ActorRequest] = None):
        actor = req.actor if req else "api_user"
        return cp.simulate_enable(capability_id, actor=actor).model_dump(mode="json")

    @app.post("/simulate/disable/{capability_id}")
    def simulate_disable(capability_id: str, req: Optional[ActorRequest] = None):
        actor = req.actor if req else "api_user"
        return cp.simulate_disable(capability_id, actor=actor).model_dump(mode="json")

    @app.post("/simulate/compare")
    def compare_states(req: CompareRequest):
        """Before/after enablement for a hypothetical change."""
        return cp.compare_states(req.actions).model_dump(mode="json")

    @app.get("/simulations/{simulation_id}")
    def get_simulation(simulation_id: str):
        return cp.get_simulation(simulation_id).model_dump(mode="json")

    # === PLANS ===

    @app.post("/plans")
    def create_plan(req: PlanCreateRequest):
        """Create a draft plan from a feasible simulation."""
        plan = cp.create_plan(
            simulation_id=req.simulation_id,
            name=req.name,
            created_by=req.created_by,
            description=req.description,
            expires_at=req.expires_at,
        )
        return plan.model_dump(mode="json")

    @app.get("/plans")
    def list_plans(status: Optional[PlanStatus] = None):
        return [p.model_dump(mode="json") for p in cp.list_plans(status)]

    @app.get("/plans/{plan_id}")
    def get_plan(plan_id: str):
        return cp.get_plan(plan_id).model_dump(mode="json")

    @app.post("/plans/{plan_id}/approve")
    def approve_plan(plan_id: str, req: PlanApproveRequest):
        return cp.approve_plan(plan_id, req.approver).model_dump(mode="json")

    @app.post("/plans/{plan_id}/execute")
    async def execute_plan(plan_id: str, req: Optional[ExecuteRequest] = None):
        """Execute (or dry-run) an approved plan."""
        req = req or ExecuteRequest()
        result = await cp.execute_plan(plan_id, dry_run=req.dry_run, actor=req.actor, force=req.force)
        return result.model_dump(mode="json")

    # === EXECUTIONS ===

    @app.get("/executions")
    def list_executions(status: Optional[ExecutionStatus] = None, limit: int = 50):
        return [e.model_dump(mode="json") for e in cp.list_executions(status=status, limit=limit)]

    @app.get("/executions/{execution_id}")
    def get_execution(execution_id: str):
        execution = cp.get_execution(execution_id)
        return {
            "execution": execution.model_dump(mode="json"),
            "rollback": cp.can_rollback(execution_id).model_dump(mode="json"),
        }

    @app.post("/executions/{execution_id}/cancel")
    def cancel_execution(execution_id: str, req: Optional[ActorRequest] = None):
        actor = req.actor if req else "api_user"
        return cp.cancel_execution(execution_id, actor).model_dump(mode="json")

    @app.post("/executions/{execution_id}/rollback")
    def rollback_execution(execution_id: str, req: Optional[RollbackRequest] = None):
        """Restore the last checkpoint (failed runs) or the baseline (completed runs)."""
        req = req or RollbackRequest()
        return cp.rollback(execution_id, req.actor, req.reason).model_dump(mode="json")

    @app.get("/executions/{execution_id}/rollback-instructions")
    def get_rollback_instructions(execution_id: str):
        return {
            "execution_id": execution_id,
            "instructions": cp.get_rollback_instructions(execution_id),
        }

    # === AUDIT ===

    @app.get("/audit")
    def get_audit_log(
        action: Optional[str] = None,
        actor: Optional[str] = None,
        success_only: bool = False,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ):
        """Audit events, oldest first."""
        events = cp.get_audit_log(
            action=action,
            actor=actor,
            success_only=success_only,
            since=since,
            until=until,
            limit=limit,
            offset=offset,
        )
        return {
            "events": [e.model_dump(mode="json") for e in events],
            "limit": limit,
            "offset": offset,
        }

    @app.get("/audit/summary")
    def get_audit_summary(window_hours: float = 24):
        return cp.get_activity_summary(window_hours).model_dump(mode="json")

    @app.get("/audit/verify")
    def verify_audit_chain():
        """Verify chain integrity."""
        return cp.verify_audit_chain()

    return app


# Default application instance
app = create_app()
