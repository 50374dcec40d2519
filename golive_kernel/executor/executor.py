"""
Plan Executor — turns a feasible simulation into ordered, checkpointed
capability state changes, with rollback.

Behavioral Contract:
- Plans are created only from feasible simulations and run only once approved
- Steps run strictly in the simulation's disable order, then its enable order
- Executions of one plan id are serialized; a concurrent call is a conflict
- Each real step mutates the registry and writes a checkpoint as one unit;
  a failed checkpoint write undoes the mutation
- Every step is re-checked against the projected state, so a plan built from
  a stale simulation cannot enable a capability next to a mutually exclusive
  one or ahead of its dependencies
- A failing step halts the run and marks the plan failed; nothing is retried
- Dry runs go through the same validation and produce the same result shape
  without touching the registry or the checkpoint store
- Every decision is written to the audit log
- Finished history beyond the configured limit is archived, oldest first
"""

import asyncio
import inspect
import logging
import sqlite3
import threading
import time
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Set
from uuid import uuid4

from croniter import croniter

from golive_kernel.audit.log import AuditLog
from golive_kernel.errors import (
    CheckpointWriteError,
    ConflictError,
    ExecutionFailure,
    NotFoundError,
    ValidationError,
)
from golive_kernel.executor.checkpoints import CheckpointStore
from golive_kernel.models.audit import AuditAction
from golive_kernel.models.capability import CapabilityAction
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
from golive_kernel.models.readiness import ReadinessStatus
from golive_kernel.models.simulation import SimulationResult
from golive_kernel.readiness.evaluator import ReadinessEvaluator
from golive_kernel.registry.store import CapabilityRegistry

logger = logging.getLogger(__name__)

StepApplier = Callable[[PlanStep], object]

_TERMINAL_PLAN_STATUSES = (PlanStatus.COMPLETED, PlanStatus.FAILED, PlanStatus.ROLLEDBACK)


def in_change_freeze(schedule: Optional[str], current_time: datetime) -> bool:
    """True if `current_time` falls in a minute matched by the freeze cron."""
    if not schedule:
        return False
    try:
        return croniter.match(schedule, current_time)
    except (ValueError, KeyError):
        # An unreadable freeze schedule freezes everything.
        logger.warning("Invalid change-freeze schedule %r; treating as frozen", schedule)
        return True


class PlanExecutor:
    """
    Owns plans and executions. The registry is only ever mutated from here.

    Host applications hook into each step with `register_step_applier`; the
    applier runs before the registry flag flips, and an exception from it
    fails the step.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        audit_log: AuditLog,
        checkpoints: Optional[CheckpointStore] = None,
        evaluator: Optional[ReadinessEvaluator] = None,
        config: Optional[ControlPlaneConfig] = None,
        now: Callable[[], datetime] = datetime.utcnow,
    ):
        self.registry = registry
        self.audit_log = audit_log
        self.checkpoints = checkpoints or CheckpointStore()
        self.evaluator = evaluator
        self.config = config or ControlPlaneConfig()
        self._now = now

        self._plans: Dict[str, ExecutionPlan] = {}
        self._executions: Dict[str, ExecutionResult] = {}
        self._appliers: Dict[CapabilityAction, StepApplier] = {}
        self._in_flight: Set[str] = set()
        self._cancel_requested: Set[str] = set()
        self._lock = threading.Lock()

    def register_step_applier(self, action: CapabilityAction, applier: StepApplier) -> None:
        """Register a host hook (sync or async) run for every real step of `action`."""
        self._appliers[action] = applier

    # --- Plans ---

    def create_plan(
        self,
        simulation: SimulationResult,
        name: str,
        created_by: str,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> ExecutionPlan:
        """Build a draft plan from a simulation. Infeasible or empty simulations are refused."""
        if not simulation.feasible:
            self.audit_log.log_audit_event(
                AuditAction.PLAN_REJECTED,
                f"Plan '{name}' rejected: simulation {simulation.id} is not feasible",
                created_by,
                False,
                {"simulation_id": simulation.id, "reasons": [r.code for r in simulation.reasons]},
            )
            raise ValidationError(
                f"Simulation {simulation.id} is not feasible",
                simulation.reasons or [Reason(code="infeasible", message="Simulation is not feasible")],
            )

        caps = {c.id: c for c in self.registry.get_all()}
        ordered = (
            [(cid, CapabilityAction.DISABLE) for cid in simulation.disable_order]
            + [(cid, CapabilityAction.ENABLE) for cid in simulation.enable_order]
        )
        if not ordered:
            raise ValidationError(
                "Simulation has no state changes to apply",
                [Reason(code="no_steps", message="Simulation has no state changes to apply")],
            )

        steps = [
            PlanStep(
                order=i,
                capability_id=cid,
                capability_name=caps[cid].name if cid in caps else cid,
                action=action,
            )
            for i, (cid, action) in enumerate(ordered, start=1)
        ]
        plan = ExecutionPlan(
            id=f"plan_{uuid4().hex[:12]}",
            name=name,
            description=description,
            simulation_id=simulation.id,
            steps=steps,
            risk_level=simulation.risk_level,
            created_by=created_by,
            created_at=self._now(),
            expires_at=expires_at,
        )
        self._plans[plan.id] = plan

        self.audit_log.log_audit_event(
            AuditAction.PLAN_CREATED,
            f"Plan '{name}' created with {len(steps)} steps",
            created_by,
            True,
            {"plan_id": plan.id, "simulation_id": simulation.id, "risk_level": plan.risk_level.value},
        )
        logger.info("Plan %s created by %s (%d steps)", plan.id, created_by, len(steps))
        return plan.model_copy(deep=True)

    def approve_plan(self, plan_id: str, approver: str) -> ExecutionPlan:
        plan = self._require_plan(plan_id)
        if plan.status != PlanStatus.DRAFT:
            raise ValidationError(
                f"Plan {plan_id} is {plan.status.value}, only draft plans can be approved",
                [Reason(code="plan_not_draft", message=f"Plan status is {plan.status.value}")],
            )

        plan.status = PlanStatus.APPROVED
        plan.approved_by = approver
        plan.approved_at = self._now()
        if plan.expires_at is None and self.config.plan_ttl_hours:
            plan.expires_at = plan.approved_at + timedelta(hours=self.config.plan_ttl_hours)

        self.audit_log.log_audit_event(
            AuditAction.PLAN_APPROVED,
            f"Plan '{plan.name}' approved",
            approver,
            True,
            {"plan_id": plan_id},
        )
        logger.info("Plan %s approved by %s", plan_id, approver)
        return plan.model_copy(deep=True)

    def get_plan(self, plan_id: str) -> Optional[ExecutionPlan]:
        plan = self._plans.get(plan_id)
        return plan.model_copy(deep=True) if plan else None

    def list_plans(self, status: Optional[PlanStatus] = None) -> List[ExecutionPlan]:
        plans = sorted(self._plans.values(), key=lambda p: p.created_at)
        return [p.model_copy(deep=True) for p in plans if status is None or p.status == status]

    def _require_plan(self, plan_id: str) -> ExecutionPlan:
        plan = self._plans.get(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        return plan

    # --- Execution ---

    async def execute(
        self,
        plan_id: str,
        dry_run: bool = False,
        actor: str = "system",
        force: bool = False,
    ) -> ExecutionResult:
        """
        Run an approved plan. Validation problems raise ValidationError, a
        concurrent run raises ConflictError; a step failure does not raise but
        comes back as a failed ExecutionResult.
        """
        plan = self._require_plan(plan_id)

        with self._lock:
            if plan_id in self._in_flight:
                raise ConflictError(
                    f"Plan {plan_id} is already executing",
                    [Reason(code="execution_in_flight", message="Another execution of this plan is in flight")],
                )
            self._in_flight.add(plan_id)

        try:
            warnings = await self._preflight(plan, dry_run, actor, force)
            return await self._run(plan, dry_run, actor, warnings)
        finally:
            with self._lock:
                self._in_flight.discard(plan_id)

    async def _preflight(self, plan: ExecutionPlan, dry_run: bool, actor: str, force: bool) -> List[str]:
        """Reject runs that must not start. Returns warnings for runs that may."""
        reasons = []
        now = self._now()
        if plan.status != PlanStatus.APPROVED:
            reasons.append(Reason(
                code="plan_not_approved",
                message=f"Plan status is {plan.status.value}; only approved plans can execute",
            ))
        if plan.expires_at is not None and now > plan.expires_at:
            reasons.append(Reason(code="plan_expired", message=f"Plan expired at {plan.expires_at.isoformat()}"))
        if not dry_run and in_change_freeze(self.config.change_freeze_schedule, now):
            reasons.append(Reason(code="change_freeze", message="A change-freeze window is active"))
        if reasons:
            self._reject(plan, actor, reasons)

        warnings = []
        if self.evaluator is None:
            return warnings

        snapshot = await self.evaluator.evaluate_readiness()
        if snapshot.status == ReadinessStatus.BLOCKED:
            message = f"Readiness is BLOCKED by: {', '.join(snapshot.blocking_issues)}"
            if dry_run:
                warnings.append(message)
            elif force:
                self.audit_log.log_audit_event(
                    AuditAction.READINESS_OVERRIDE,
                    f"Readiness override for plan '{plan.name}': {message}",
                    actor,
                    True,
                    {"plan_id": plan.id, "blocking_issues": snapshot.blocking_issues},
                )
                logger.warning("Plan %s forced past blocked readiness by %s", plan.id, actor)
                warnings.append(message)
            else:
                self._reject(plan, actor, [Reason(
                    code="readiness_blocked",
                    message=message,
                )])
        elif snapshot.status == ReadinessStatus.DEGRADED:
            warnings.append(f"Readiness is DEGRADED: {', '.join(snapshot.warnings)}")
        return warnings

    def _reject(self, plan: ExecutionPlan, actor: str, reasons: List[Reason]) -> None:
        self.audit_log.log_audit_event(
            AuditAction.EXECUTION_REJECTED,
            f"Execution of plan '{plan.name}' rejected: {'; '.join(r.message for r in reasons)}",
            actor,
            False,
            {"plan_id": plan.id, "reasons": [r.code for r in reasons]},
        )
        logger.warning("Execution of plan %s rejected: %s", plan.id, [r.code for r in reasons])
        raise ValidationError(f"Plan {plan.id} cannot execute", reasons)

    async def _run(
        self,
        plan: ExecutionPlan,
        dry_run: bool,
        actor: str,
        warnings: List[str],
    ) -> ExecutionResult:
        start_time = time.monotonic()
        baseline = self.registry.enablement_map()
        execution = ExecutionResult(
            execution_id=f"exec_{uuid4().hex[:12]}",
            plan_id=plan.id,
            status=ExecutionStatus.RUNNING,
            dry_run=dry_run,
            actor=actor,
            baseline_state=baseline,
            started_at=self._now(),
            warnings=list(warnings),
        )
        self._executions[execution.execution_id] = execution
        if not dry_run:
            plan.status = PlanStatus.EXECUTING

        self.audit_log.log_audit_event(
            AuditAction.EXECUTION_STARTED,
            f"{'Dry run' if dry_run else 'Execution'} of plan '{plan.name}' started",
            actor,
            True,
            {"plan_id": plan.id, "execution_id": execution.execution_id, "dry_run": dry_run},
        )
        logger.info("Execution %s of plan %s started (dry_run=%s)", execution.execution_id, plan.id, dry_run)

        projected = dict(baseline)
        try:
            for step in plan.steps:
                if execution.execution_id in self._cancel_requested:
                    self._finish_cancelled(execution, plan, step)
                    break
                try:
                    result = await self._run_step(execution, step, projected, dry_run)
                except ExecutionFailure as e:
                    self._finish_failed(execution, plan, step, e)
                    break
                execution.steps.append(result)
                execution.steps_completed += 1
            else:
                execution.status = ExecutionStatus.COMPLETED
                execution.success = True
        except (asyncio.CancelledError, Exception) as e:
            # Task cancellation or an infrastructure error: the current step
            # either committed or never started. Mark the run failed and re-raise.
            execution.status = ExecutionStatus.FAILED
            execution.errors.append(Reason(code="interrupted", message=f"{type(e).__name__}: {e}"))
            if not dry_run:
                plan.status = PlanStatus.FAILED
            self._log_interrupted(execution, plan, e)
            raise
        finally:
            self._cancel_requested.discard(execution.execution_id)
            execution.completed_at = self._now()
            execution.duration_ms = round((time.monotonic() - start_time) * 1000, 3)

        if execution.success:
            if not dry_run:
                plan.status = PlanStatus.COMPLETED
                self.checkpoints.discard(execution.execution_id)
            self.audit_log.log_audit_event(
                AuditAction.EXECUTION_COMPLETED,
                f"{'Dry run' if dry_run else 'Execution'} of plan '{plan.name}' completed "
                f"({execution.steps_completed} steps)",
                actor,
                True,
                {"plan_id": plan.id, "execution_id": execution.execution_id, "dry_run": dry_run},
            )
            logger.info("Execution %s completed", execution.execution_id)

        self._prune_history()
        return execution.model_copy(deep=True)

    async def _run_step(
        self,
        execution: ExecutionResult,
        step: PlanStep,
        projected: Dict[str, bool],
        dry_run: bool,
    ) -> StepResult:
        step_start = time.monotonic()
        self._check_step(step, projected)
        enabled = step.action == CapabilityAction.ENABLE

        checkpoint_written = False
        if not dry_run:
            if self.evaluator is not None:
                health = await self.evaluator.quick_health_check()
                if not health.healthy:
                    raise ExecutionFailure(f"Health check failed before step {step.order}: {health.message}",
                                           step.capability_id)
            await self._apply(step)
            self._commit(execution.execution_id, step, enabled)
            checkpoint_written = True

        projected[step.capability_id] = enabled
        duration = round((time.monotonic() - step_start) * 1000, 3)

        if not dry_run:
            self.audit_log.log_audit_event(
                AuditAction.STEP_COMPLETED,
                f"Step {step.order}: {step.action.value} {step.capability_id}",
                execution.actor,
                True,
                {"execution_id": execution.execution_id, "step": step.order, "capability_id": step.capability_id},
            )
        return StepResult(
            order=step.order,
            capability_id=step.capability_id,
            action=step.action,
            status=StepStatus.SUCCESS,
            duration_ms=duration,
            checkpoint_written=checkpoint_written,
        )

    def _check_step(self, step: PlanStep, state: Dict[str, bool]) -> None:
        """
        The step must leave every enabled capability with its dependencies
        enabled and no mutually exclusive pair enabled together.
        """
        cap = self.registry.get(step.capability_id)
        if cap is None:
            raise ExecutionFailure(f"Capability {step.capability_id} is not registered", step.capability_id)

        if step.action == CapabilityAction.ENABLE:
            missing = sorted(d for d in cap.depends_on if not state.get(d, False))
            if missing:
                raise ExecutionFailure(
                    f"Cannot enable {cap.id}: dependencies disabled: {', '.join(missing)}", cap.id
                )
            exclusive = sorted(
                c.id for c in self.registry.get_all()
                if c.id != cap.id and state.get(c.id, False)
                and (c.id in cap.conflicts_with or cap.id in c.conflicts_with)
            )
            if exclusive:
                raise ExecutionFailure(
                    f"Cannot enable {cap.id}: mutually exclusive with enabled {', '.join(exclusive)}", cap.id
                )
        else:
            dependents = sorted(
                c.id for c in self.registry.get_all()
                if cap.id in c.depends_on and state.get(c.id, False)
            )
            if dependents:
                raise ExecutionFailure(
                    f"Cannot disable {cap.id}: enabled dependents: {', '.join(dependents)}", cap.id
                )

    async def _apply(self, step: PlanStep) -> None:
        applier = self._appliers.get(step.action)
        if applier is None:
            return
        try:
            result = applier(step)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            raise ExecutionFailure(
                f"Step {step.order} ({step.action.value} {step.capability_id}) failed: {e}",
                step.capability_id,
            ) from e

    def _commit(self, execution_id: str, step: PlanStep, enabled: bool) -> None:
        """Flip the flag and persist the checkpoint; undo the flip if the write fails."""
        previous = self.registry.set_enabled(step.capability_id, enabled)
        try:
            self.checkpoints.write(execution_id, step.order, self.registry.enablement_map())
        except sqlite3.Error as e:
            self.registry.set_enabled(step.capability_id, previous)
            raise CheckpointWriteError(
                f"Checkpoint write for step {step.order} failed: {e}", step.capability_id
            ) from e

    def _finish_failed(
        self,
        execution: ExecutionResult,
        plan: ExecutionPlan,
        step: PlanStep,
        error: ExecutionFailure,
    ) -> None:
        logger.exception("Execution %s failed at step %d", execution.execution_id, step.order)
        execution.steps.append(StepResult(
            order=step.order,
            capability_id=step.capability_id,
            action=step.action,
            status=StepStatus.FAILED,
            error=error.message,
        ))
        execution.steps_failed += 1
        self._skip_after(execution, plan, step)
        execution.status = ExecutionStatus.FAILED
        execution.errors.extend(error.reasons)
        if not execution.dry_run:
            plan.status = PlanStatus.FAILED
            self.audit_log.log_audit_event(
                AuditAction.STEP_FAILED,
                f"Step {step.order}: {step.action.value} {step.capability_id} failed: {error.message}",
                execution.actor,
                False,
                {"execution_id": execution.execution_id, "step": step.order, "capability_id": step.capability_id},
            )
        self.audit_log.log_audit_event(
            AuditAction.EXECUTION_FAILED,
            f"{'Dry run' if execution.dry_run else 'Execution'} of plan '{plan.name}' failed "
            f"at step {step.order}",
            execution.actor,
            False,
            {"plan_id": plan.id, "execution_id": execution.execution_id, "dry_run": execution.dry_run},
        )

    def _log_interrupted(self, execution: ExecutionResult, plan: ExecutionPlan, error: BaseException) -> None:
        try:
            self.audit_log.log_audit_event(
                AuditAction.EXECUTION_FAILED,
                f"{'Dry run' if execution.dry_run else 'Execution'} of plan '{plan.name}' interrupted: "
                f"{type(error).__name__}",
                execution.actor,
                False,
                {"plan_id": plan.id, "execution_id": execution.execution_id, "interrupted": True},
            )
        except Exception:
            # The interruption is re-raised by the caller; this must not replace it.
            logger.exception("Could not record interruption of execution %s", execution.execution_id)

    def _finish_cancelled(self, execution: ExecutionResult, plan: ExecutionPlan, step: PlanStep) -> None:
        self._skip_after(execution, plan, step, inclusive=True)
        execution.status = ExecutionStatus.CANCELLED
        execution.warnings.append(f"Cancelled before step {step.order}")
        if not execution.dry_run:
            plan.status = PlanStatus.FAILED
        self.audit_log.log_audit_event(
            AuditAction.EXECUTION_CANCELLED,
            f"Execution of plan '{plan.name}' cancelled before step {step.order}",
            execution.actor,
            False,
            {"plan_id": plan.id, "execution_id": execution.execution_id},
        )
        logger.info("Execution %s cancelled before step %d", execution.execution_id, step.order)

    def _skip_after(self, execution: ExecutionResult, plan: ExecutionPlan, step: PlanStep,
                    inclusive: bool = False) -> None:
        for later in plan.steps:
            if later.order > step.order or (inclusive and later.order == step.order):
                execution.steps.append(StepResult(
                    order=later.order,
                    capability_id=later.capability_id,
                    action=later.action,
                    status=StepStatus.SKIPPED,
                ))
                execution.steps_skipped += 1

    def cancel_execution(self, execution_id: str, actor: str) -> ExecutionResult:
        """Ask a running execution to stop before its next step."""
        execution = self._require_execution(execution_id)
        if execution.status != ExecutionStatus.RUNNING:
            raise ValidationError(
                f"Execution {execution_id} is {execution.status.value}",
                [Reason(code="not_running", message="Only running executions can be cancelled")],
            )
        self._cancel_requested.add(execution_id)
        logger.info("Cancellation of %s requested by %s", execution_id, actor)
        return execution.model_copy(deep=True)

    def get_execution(self, execution_id: str) -> Optional[ExecutionResult]:
        execution = self._executions.get(execution_id)
        return execution.model_copy(deep=True) if execution else None

    def list_executions(
        self,
        status: Optional[ExecutionStatus] = None,
        limit: int = 50,
    ) -> List[ExecutionResult]:
        """Most recent first."""
        executions = sorted(self._executions.values(), key=lambda e: e.started_at, reverse=True)
        matching = [e for e in executions if status is None or e.status == status]
        return [e.model_copy(deep=True) for e in matching[:limit]]

    def _require_execution(self, execution_id: str) -> ExecutionResult:
        execution = self._executions.get(execution_id)
        if execution is None:
            raise NotFoundError(f"Execution {execution_id} not found")
        return execution

    # --- Retention ---

    def _prune_history(self) -> None:
        """
        Archive history beyond `history_limit`: the oldest finished executions
        (with their checkpoints) and the oldest plans in a terminal state.
        Insertion order is age order.
        """
        limit = self.config.history_limit
        excess = len(self._executions) - limit
        if excess > 0:
            finished = [eid for eid, e in self._executions.items() if e.status != ExecutionStatus.RUNNING]
            for eid in finished[:excess]:
                del self._executions[eid]
                self.checkpoints.discard(eid)
                logger.debug("Archived execution %s", eid)

        terminal = [pid for pid, p in self._plans.items() if p.status in _TERMINAL_PLAN_STATUSES]
        for pid in terminal[:max(len(terminal) - limit, 0)]:
            del self._plans[pid]
            logger.debug("Archived plan %s", pid)

    # --- Checkpoints ---

    def create_checkpoint(self, execution_id: str, step_index: int) -> Checkpoint:
        """Capture the registry's current enablement for an execution."""
        self._require_execution(execution_id)
        return self.checkpoints.write(execution_id, step_index, self.registry.enablement_map())

    def get_checkpoint(self, execution_id: str) -> Optional[Checkpoint]:
        return self.checkpoints.latest(execution_id)

    def list_checkpoints(self, execution_id: str) -> List[Checkpoint]:
        return self.checkpoints.list(execution_id)

    # --- Rollback ---

    def can_rollback(self, execution_id: str) -> RollbackEligibility:
        execution = self._require_execution(execution_id)
        checkpoint = self.checkpoints.latest(execution_id)
        applied = [
            s for s in execution.steps
            if s.status == StepStatus.SUCCESS and s.checkpoint_written
        ]

        reasons = []
        if execution.dry_run:
            reasons.append(Reason(code="dry_run", message="Dry runs change nothing"))
        elif execution.rolled_back:
            reasons.append(Reason(code="already_rolled_back", message="Execution was already rolled back"))
        elif execution.status == ExecutionStatus.RUNNING:
            reasons.append(Reason(code="execution_running", message="Execution is still running"))
        elif execution.status != ExecutionStatus.COMPLETED and checkpoint is None:
            reasons.append(Reason(code="no_checkpoint", message="No step was applied"))

        return RollbackEligibility(
            execution_id=execution_id,
            can_rollback=not reasons,
            reasons=reasons,
            checkpoint_step=checkpoint.step_index if checkpoint else None,
            rollbackable_steps=len(applied),
        )

    def rollback(self, execution_id: str, actor: str, reason: str = "") -> RollbackResult:
        """
        Restore the last checkpoint (failed or cancelled runs) or the
        pre-execution baseline (completed runs). A second call is a no-op.
        """
        execution = self._require_execution(execution_id)
        if execution.rolled_back:
            return RollbackResult(
                execution_id=execution_id,
                applied=False,
                restored_from="baseline" if execution.status == ExecutionStatus.COMPLETED else "checkpoint",
                rolled_back_at=self._now(),
            )

        eligibility = self.can_rollback(execution_id)
        if not eligibility.can_rollback:
            self.audit_log.log_audit_event(
                AuditAction.ROLLBACK_FAILED,
                f"Rollback of {execution_id} refused: {'; '.join(r.message for r in eligibility.reasons)}",
                actor,
                False,
                {"execution_id": execution_id, "reasons": [r.code for r in eligibility.reasons]},
            )
            raise ValidationError(f"Execution {execution_id} cannot be rolled back", eligibility.reasons)

        if execution.status == ExecutionStatus.COMPLETED:
            target, restored_from, step_index = execution.baseline_state, "baseline", None
        else:
            checkpoint = self.checkpoints.latest(execution_id)
            target, restored_from, step_index = checkpoint.captured_state, "checkpoint", checkpoint.step_index

        changes = self.registry.restore(target)
        execution.rolled_back = True
        execution.status = ExecutionStatus.ROLLEDBACK
        plan = self._plans.get(execution.plan_id)
        if plan is not None:
            plan.status = PlanStatus.ROLLEDBACK

        self.audit_log.log_audit_event(
            AuditAction.ROLLBACK_COMPLETED,
            f"Execution {execution_id} rolled back from {restored_from}"
            + (f": {reason}" if reason else ""),
            actor,
            True,
            {
                "execution_id": execution_id,
                "restored_from": restored_from,
                "checkpoint_step": step_index,
                "changes": len(changes),
            },
        )
        logger.info("Execution %s rolled back by %s (%d changes)", execution_id, actor, len(changes))
        return RollbackResult(
            execution_id=execution_id,
            applied=True,
            restored_from=restored_from,
            checkpoint_step=step_index,
            changes=changes,
            rolled_back_at=self._now(),
        )

    def get_rollback_instructions(self, execution_id: str) -> List[str]:
        """Manual steps that reverse every applied step, newest first."""
        execution = self._require_execution(execution_id)
        applied = [s for s in execution.steps if s.status == StepStatus.SUCCESS and not execution.dry_run]
        if not applied:
            return ["No steps were applied; nothing to roll back"]

        instructions = []
        for i, step in enumerate(reversed(applied), start=1):
            cap = self.registry.get(step.capability_id)
            turn_on = step.action == CapabilityAction.DISABLE
            verb = "Enable" if turn_on else "Disable"
            line = f"{i}. {verb} {step.capability_id}"
            if cap is not None and cap.flag:
                line += f" (set {cap.flag}={'true' if turn_on else 'false'})"
            instructions.append(line)
        if execution.rolled_back:
            instructions.append("Note: this execution has already been rolled back")
        return instructions
