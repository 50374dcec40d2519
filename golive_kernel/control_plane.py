"""
Control Plane — wires every component around one registry and gates the
public operations behind the ENABLE_GLCP flag.

When the flag is off every public operation raises ControlPlaneDisabled;
nothing is partially applied. `status()` is the one exception so that
operators can still see why the plane is off.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Union

from golive_kernel.audit.log import AuditLog
from golive_kernel.dependencies.resolver import DependencyResolver
from golive_kernel.errors import ControlPlaneDisabled, NotFoundError
from golive_kernel.executor.checkpoints import CheckpointStore
from golive_kernel.executor.executor import PlanExecutor
from golive_kernel.models.audit import ActivitySummary, AuditAction, AuditEvent
from golive_kernel.models.capability import (
    Capability,
    CapabilityDomain,
    DomainGroup,
    RegistrySnapshot,
    RiskLevel,
)
from golive_kernel.models.config import ControlPlaneConfig
from golive_kernel.models.execution import (
    ExecutionPlan,
    ExecutionResult,
    ExecutionStatus,
    PlanStatus,
    RollbackEligibility,
    RollbackResult,
)
from golive_kernel.models.graph import BlastRadius, DependencyValidation, InvalidStateReport
from golive_kernel.models.readiness import (
    GoLiveReadiness,
    ProbeInfo,
    QuickHealth,
    ReadinessSnapshot,
    ReadinessStatus,
)
from golive_kernel.models.simulation import SimulationAction, SimulationResult, StateComparison
from golive_kernel.readiness.evaluator import ReadinessEvaluator, readiness_score
from golive_kernel.readiness.probes import register_builtin_probes
from golive_kernel.registry.store import CapabilityRegistry
from golive_kernel.simulator.conflicts import ConflictDetector
from golive_kernel.simulator.simulator import RolloutSimulator

logger = logging.getLogger(__name__)


class ControlPlane:

    def __init__(
        self,
        config: Optional[ControlPlaneConfig] = None,
        registry: Optional[CapabilityRegistry] = None,
        evaluator: Optional[ReadinessEvaluator] = None,
        audit_log: Optional[AuditLog] = None,
        checkpoints: Optional[CheckpointStore] = None,
    ):
        self.config = config or ControlPlaneConfig.from_env()

        if registry is None:
            registry = CapabilityRegistry(catalog_path=self.config.catalog_path)
            registry.discover_and_register()
        self.registry = registry

        self.resolver = DependencyResolver(self.registry)
        self.detector = ConflictDetector(self.registry)
        self.simulator = RolloutSimulator(
            self.registry, self.resolver, self.detector, cache_size=self.config.simulation_cache_size,
        )

        if evaluator is None:
            evaluator = ReadinessEvaluator(self.config)
            register_builtin_probes(evaluator, self.resolver, self.config)
        self.evaluator = evaluator

        self.audit_log = audit_log or AuditLog(self.config.audit_db_path)
        self.executor = PlanExecutor(
            registry=self.registry,
            audit_log=self.audit_log,
            checkpoints=checkpoints or CheckpointStore(self.config.checkpoint_db_path),
            evaluator=self.evaluator,
            config=self.config,
        )

    # --- Enablement ---

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def require_enabled(self) -> None:
        if not self.config.enabled:
            raise ControlPlaneDisabled()

    async def status(self) -> dict:
        """Quick health plus enablement. Available even when disabled."""
        health = await self.evaluator.quick_health_check()
        return {
            "enabled": self.config.enabled,
            "kill_switch": self.config.kill_switch,
            "health": health.model_dump(mode="json"),
        }

    # --- Readiness ---

    async def evaluate_readiness(
        self,
        use_cache: bool = True,
        categories: Optional[Sequence[str]] = None,
    ) -> ReadinessSnapshot:
        self.require_enabled()
        return await self.evaluator.evaluate_readiness(use_cache=use_cache, categories=categories)

    async def evaluate_category(self, category: str) -> ReadinessSnapshot:
        self.require_enabled()
        if category not in self.evaluator.categories():
            raise NotFoundError(f"No probes registered for category {category}")
        return await self.evaluator.evaluate_category(category)

    async def quick_health_check(self) -> QuickHealth:
        self.require_enabled()
        return await self.evaluator.quick_health_check()

    async def get_go_live_readiness(self, use_cache: bool = True) -> GoLiveReadiness:
        self.require_enabled()
        return await self.evaluator.get_go_live_readiness(use_cache=use_cache)

    def get_available_probes(self) -> List[ProbeInfo]:
        self.require_enabled()
        return self.evaluator.get_available_probes()

    async def dashboard(self) -> dict:
        """Executive summary across readiness, capabilities and executions."""
        self.require_enabled()
        snapshot = await self.evaluator.evaluate_readiness()
        capabilities = self.registry.get_all()
        executions = self.executor.list_executions(limit=100)

        by_risk = {level.value: 0 for level in RiskLevel}
        for cap in capabilities:
            by_risk[cap.risk_level.value] += 1
        by_domain = {
            group.domain.value: {
                "enabled": sum(1 for c in group.capabilities if c.enabled),
                "disabled": sum(1 for c in group.capabilities if not c.enabled),
            }
            for group in self.registry.group_by_domain()
        }
        enabled = sum(1 for c in capabilities if c.enabled)

        return {
            "readiness": {
                "status": snapshot.status.value,
                "score": readiness_score(snapshot.summary),
                "can_go_live": snapshot.status != ReadinessStatus.BLOCKED,
            },
            "capabilities": {
                "total": len(capabilities),
                "enabled": enabled,
                "disabled": len(capabilities) - enabled,
                "by_risk": by_risk,
                "by_domain": by_domain,
            },
            "recent_executions": {
                "total": len(executions),
                "successful": sum(1 for e in executions if e.success),
                "failed": sum(1 for e in executions if not e.success and not e.rolled_back),
                "rolled_back": sum(1 for e in executions if e.rolled_back),
            },
            "audit": self.audit_log.get_activity_summary().model_dump(mode="json"),
        }

    # --- Capabilities ---

    def list_capabilities(
        self,
        domain: Optional[CapabilityDomain] = None,
        enabled: Optional[bool] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> List[Capability]:
        self.require_enabled()
        return self.registry.filter(domain=domain, enabled=enabled, risk_level=risk_level)

    def get_capability(self, capability_id: str) -> Capability:
        self.require_enabled()
        cap = self.registry.get(capability_id)
        if cap is None:
            raise NotFoundError(f"Capability {capability_id} not found")
        return cap

    def group_by_domain(self) -> List[DomainGroup]:
        self.require_enabled()
        return self.registry.group_by_domain()

    def calculate_blast_radius(self, capability_id: str) -> BlastRadius:
        self.get_capability(capability_id)
        return self.resolver.calculate_blast_radius(capability_id)

    def get_safe_to_enable(self) -> List[str]:
        self.require_enabled()
        return self.resolver.get_safe_to_enable()

    def validate_dependencies(self) -> DependencyValidation:
        self.require_enabled()
        return self.resolver.validate_dependencies()

    def detect_invalid_states(self) -> InvalidStateReport:
        self.require_enabled()
        return self.resolver.detect_invalid_states()

    def snapshot(self) -> RegistrySnapshot:
        self.require_enabled()
        return self.registry.snapshot()

    # --- Simulation ---

    def simulate(
        self,
        actions: Union[SimulationAction, dict, Iterable[Union[SimulationAction, dict]]],
        actor: str = "system",
    ) -> SimulationResult:
        """Simulate one action or a batch; every run is audited."""
        self.require_enabled()
        if isinstance(actions, (SimulationAction, dict)):
            actions = [actions]
        result = self.simulator.simulate_batch(actions)
        self.audit_log.log_audit_event(
            AuditAction.SIMULATION_RUN,
            f"Simulated {', '.join(f'{a.action.value} {a.capability_id}' for a in result.actions)}"
            f" (feasible={result.feasible})",
            actor,
            True,
            {"simulation_id": result.id, "feasible": result.feasible, "risk_level": result.risk_level.value},
        )
        if not result.feasible:
            logger.warning("Simulation %s infeasible: %s", result.id, [r.code for r in result.reasons])
        return result

    def simulate_enable(self, capability_id: str, actor: str = "system") -> SimulationResult:
        return self.simulate({"capability_id": capability_id, "action": "enable"}, actor)

    def simulate_disable(self, capability_id: str, actor: str = "system") -> SimulationResult:
        return self.simulate({"capability_id": capability_id, "action": "disable"}, actor)

    def compare_states(self, actions: Iterable[Union[SimulationAction, dict]]) -> StateComparison:
        self.require_enabled()
        return self.simulator.compare_states(actions)

    def get_simulation(self, simulation_id: str) -> SimulationResult:
        self.require_enabled()
        result = self.simulator.get_simulation(simulation_id)
        if result is None:
            raise NotFoundError(f"Simulation {simulation_id} not found")
        return result

    # --- Plans ---

    def create_plan(
        self,
        simulation_id: str,
        name: str,
        created_by: str,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> ExecutionPlan:
        simulation = self.get_simulation(simulation_id)
        return self.executor.create_plan(simulation, name, created_by, description, expires_at)

    def approve_plan(self, plan_id: str, approver: str) -> ExecutionPlan:
        self.require_enabled()
        return self.executor.approve_plan(plan_id, approver)

    def get_plan(self, plan_id: str) -> ExecutionPlan:
        self.require_enabled()
        plan = self.executor.get_plan(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        return plan

    def list_plans(self, status: Optional[PlanStatus] = None) -> List[ExecutionPlan]:
        self.require_enabled()
        return self.executor.list_plans(status)

    # --- Execution ---

    async def execute_plan(
        self,
        plan_id: str,
        dry_run: bool = False,
        actor: str = "system",
        force: bool = False,
    ) -> ExecutionResult:
        self.require_enabled()
        return await self.executor.execute(plan_id, dry_run=dry_run, actor=actor, force=force)

    def get_execution(self, execution_id: str) -> ExecutionResult:
        self.require_enabled()
        execution = self.executor.get_execution(execution_id)
        if execution is None:
            raise NotFoundError(f"Execution {execution_id} not found")
        return execution

    def list_executions(self, status: Optional[ExecutionStatus] = None, limit: int = 50) -> List[ExecutionResult]:
        self.require_enabled()
        return self.executor.list_executions(status=status, limit=limit)

    def cancel_execution(self, execution_id: str, actor: str) -> ExecutionResult:
        self.require_enabled()
        return self.executor.cancel_execution(execution_id, actor)

    def can_rollback(self, execution_id: str) -> RollbackEligibility:
        self.require_enabled()
        return self.executor.can_rollback(execution_id)

    def rollback(self, execution_id: str, actor: str, reason: str = "") -> RollbackResult:
        self.require_enabled()
        return self.executor.rollback(execution_id, actor, reason)

    def get_rollback_instructions(self, execution_id: str) -> List[str]:
        self.require_enabled()
        return self.executor.get_rollback_instructions(execution_id)

    # --- Audit ---

    def get_audit_log(self, **filters) -> List[AuditEvent]:
        self.require_enabled()
        return self.audit_log.get_audit_log(**filters)

    def get_activity_summary(self, window_hours: float = 24) -> ActivitySummary:
        self.require_enabled()
        return self.audit_log.get_activity_summary(window_hours)

    def verify_audit_chain(self) -> dict:
        self.require_enabled()
        return {
            "integrity_valid": self.audit_log.verify_chain_integrity(),
            "total_events": self.audit_log.count(),
        }

    def close(self) -> None:
        self.audit_log.close()
        self.executor.checkpoints.close()
