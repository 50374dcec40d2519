"""Tests for the Plan Executor, checkpoints and rollback."""

import asyncio
import sqlite3
from datetime import datetime, timedelta

import pytest

from golive_kernel.audit.log import AuditLog
from golive_kernel.errors import ConflictError, NotFoundError, ValidationError
from golive_kernel.executor.checkpoints import CheckpointStore
from golive_kernel.executor.executor import PlanExecutor, in_change_freeze
from golive_kernel.models.audit import AuditAction
from golive_kernel.models.capability import CapabilityAction
from golive_kernel.models.config import ControlPlaneConfig
from golive_kernel.models.execution import ExecutionStatus, PlanStatus, StepStatus
from golive_kernel.readiness.evaluator import ReadinessEvaluator
from golive_kernel.readiness.probes import FunctionProbe
from golive_kernel.registry.store import CapabilityRegistry
from golive_kernel.simulator.simulator import RolloutSimulator


def _cap(cid, depends_on=(), conflicts_with=(), risk="low", enabled=False):
    return {
        "id": cid,
        "name": cid.upper(),
        "domain": "platform",
        "risk_level": risk,
        "depends_on": list(depends_on),
        "conflicts_with": list(conflicts_with),
        "enabled": enabled,
    }


def _chain(length: int):
    """c1 <- c2 <- ... <- cN: enabling cN needs every earlier link."""
    entries = [_cap("c1")]
    for i in range(2, length + 1):
        entries.append(_cap(f"c{i}", [f"c{i - 1}"]))
    return entries


class _FailingCheckpointStore(CheckpointStore):
    def __init__(self, fail_at: int):
        super().__init__()
        self.fail_at = fail_at

    def write(self, execution_id, step_index, state):
        if step_index == self.fail_at:
            raise sqlite3.OperationalError("disk I/O error")
        return super().write(execution_id, step_index, state)


class _UnmountedCheckpointStore(CheckpointStore):
    def write(self, execution_id, step_index, state):
        raise RuntimeError("checkpoint volume unmounted")


class _LockedAuditLog(AuditLog):
    """Refuses to record failed executions."""

    def log_audit_event(self, action, *args, **kwargs):
        if action == AuditAction.EXECUTION_FAILED:
            raise sqlite3.OperationalError("database is locked")
        return super().log_audit_event(action, *args, **kwargs)


class _ExecutorHarness:
    def setup_method(self):
        self.setup_harness(_chain(3))

    def setup_harness(self, entries, config=None, evaluator=None, checkpoints=None, audit=None):
        self.registry = CapabilityRegistry(catalog=entries, environ={})
        self.registry.discover_and_register()
        self.simulator = RolloutSimulator(self.registry)
        self.audit = audit or AuditLog(db_path=":memory:")
        self.checkpoints = checkpoints or CheckpointStore(db_path=":memory:")
        self.executor = PlanExecutor(
            registry=self.registry,
            audit_log=self.audit,
            checkpoints=self.checkpoints,
            evaluator=evaluator,
            config=config or ControlPlaneConfig(enabled=True),
        )

    def _approved_plan(self, target: str, **kwargs):
        simulation = self.simulator.simulate_enable(target)
        plan = self.executor.create_plan(simulation, f"enable {target}", "alice", **kwargs)
        return self.executor.approve_plan(plan.id, "bob")

    def _actions(self, action):
        return self.audit.get_audit_log(action=action)


class TestPlans(_ExecutorHarness):
    def test_create_plan_orders_steps(self):
        simulation = self.simulator.simulate_enable("c3")
        plan = self.executor.create_plan(simulation, "enable c3", "alice", description="three steps")
        assert plan.status == PlanStatus.DRAFT
        assert [s.capability_id for s in plan.steps] == ["c1", "c2", "c3"]
        assert [s.order for s in plan.steps] == [1, 2, 3]
        assert all(s.action == CapabilityAction.ENABLE for s in plan.steps)
        assert plan.simulation_id == simulation.id
        assert len(self._actions("plan_created")) == 1

    def test_disable_steps_come_first(self):
        self.setup_harness([_cap("x", conflicts_with=["y"]), _cap("y", enabled=True)])
        simulation = self.simulator.simulate_batch([
            {"capability_id": "x", "action": "enable"},
            {"capability_id": "y", "action": "disable"},
        ])
        plan = self.executor.create_plan(simulation, "swap", "alice")
        assert [(s.capability_id, s.action) for s in plan.steps] == [
            ("y", CapabilityAction.DISABLE), ("x", CapabilityAction.ENABLE),
        ]

    def test_infeasible_simulation_rejected(self):
        self.setup_harness([_cap("x", conflicts_with=["y"]), _cap("y", enabled=True)])
        simulation = self.simulator.simulate_enable("x")
        with pytest.raises(ValidationError) as exc:
            self.executor.create_plan(simulation, "bad", "alice")
        assert exc.value.reasons[0].code == "mutual_exclusion"
        assert self.executor.list_plans() == []
        assert self._actions("plan_rejected")[0].success is False

    def test_empty_simulation_rejected(self):
        self.registry.set_enabled("c1", True)
        simulation = self.simulator.simulate_enable("c1")
        with pytest.raises(ValidationError) as exc:
            self.executor.create_plan(simulation, "noop", "alice")
        assert exc.value.reasons[0].code == "no_steps"

    def test_approve(self):
        plan = self._approved_plan("c2")
        assert plan.status == PlanStatus.APPROVED
        assert plan.approved_by == "bob"
        assert plan.approved_at is not None
        assert len(self._actions("plan_approved")) == 1

    def test_approve_twice_rejected(self):
        plan = self._approved_plan("c2")
        with pytest.raises(ValidationError):
            self.executor.approve_plan(plan.id, "carol")

    def test_unknown_plan(self):
        with pytest.raises(NotFoundError):
            self.executor.approve_plan("plan_missing", "bob")
        assert self.executor.get_plan("plan_missing") is None

    def test_plan_ttl_applied_on_approval(self):
        self.setup_harness(_chain(2), config=ControlPlaneConfig(enabled=True, plan_ttl_hours=2))
        plan = self._approved_plan("c2")
        assert plan.expires_at == plan.approved_at + timedelta(hours=2)

    def test_get_plan_returns_copy(self):
        plan = self._approved_plan("c2")
        copy = self.executor.get_plan(plan.id)
        copy.status = PlanStatus.COMPLETED
        assert self.executor.get_plan(plan.id).status == PlanStatus.APPROVED

    def test_list_plans_by_status(self):
        self._approved_plan("c2")
        self.executor.create_plan(self.simulator.simulate_enable("c3"), "draft", "alice")
        assert len(self.executor.list_plans()) == 2
        assert len(self.executor.list_plans(PlanStatus.DRAFT)) == 1


class TestExecution(_ExecutorHarness):
    def test_draft_plan_cannot_execute(self):
        simulation = self.simulator.simulate_enable("c3")
        plan = self.executor.create_plan(simulation, "draft", "alice")
        with pytest.raises(ValidationError) as exc:
            asyncio.run(self.executor.execute(plan.id))
        assert exc.value.reasons[0].code == "plan_not_approved"
        assert self.registry.get("c1").enabled is False
        assert self._actions("execution_rejected")[0].success is False

    def test_expired_plan_cannot_execute(self):
        plan = self._approved_plan("c3", expires_at=datetime.utcnow() - timedelta(minutes=1))
        with pytest.raises(ValidationError) as exc:
            asyncio.run(self.executor.execute(plan.id))
        assert "plan_expired" in [r.code for r in exc.value.reasons]

    def test_successful_run(self):
        plan = self._approved_plan("c3")
        result = asyncio.run(self.executor.execute(plan.id, actor="carol"))

        assert result.success is True
        assert result.status == ExecutionStatus.COMPLETED
        assert result.steps_completed == 3
        assert [s.status for s in result.steps] == [StepStatus.SUCCESS] * 3
        assert all(s.checkpoint_written for s in result.steps)
        assert result.baseline_state == {"c1": False, "c2": False, "c3": False}
        assert self.registry.enablement_map() == {"c1": True, "c2": True, "c3": True}
        assert self.executor.get_plan(plan.id).status == PlanStatus.COMPLETED
        # Checkpoints are discarded once the run succeeds.
        assert self.executor.list_checkpoints(result.execution_id) == []
        assert len(self._actions("step_completed")) == 3
        assert len(self._actions("execution_completed")) == 1

    def test_completed_plan_cannot_rerun(self):
        plan = self._approved_plan("c3")
        asyncio.run(self.executor.execute(plan.id))
        with pytest.raises(ValidationError):
            asyncio.run(self.executor.execute(plan.id))

    def test_dry_run(self):
        plan = self._approved_plan("c3")
        before = self.registry.enablement_map()
        result = asyncio.run(self.executor.execute(plan.id, dry_run=True))

        assert result.success is True
        assert result.dry_run is True
        assert len(result.steps) == len(plan.steps)
        assert not any(s.checkpoint_written for s in result.steps)
        assert self.registry.enablement_map() == before
        assert self.checkpoints.count() == 0
        assert self.executor.get_plan(plan.id).status == PlanStatus.APPROVED

    def test_dry_run_then_real_run_same_shape(self):
        plan = self._approved_plan("c3")
        dry = asyncio.run(self.executor.execute(plan.id, dry_run=True))
        real = asyncio.run(self.executor.execute(plan.id))
        assert [(s.order, s.capability_id, s.status) for s in dry.steps] == \
               [(s.order, s.capability_id, s.status) for s in real.steps]

    def test_failing_step_halts(self):
        self.setup_harness(_chain(4))
        plan = self._approved_plan("c4")

        def applier(step):
            if step.order == 3:
                raise RuntimeError("flag service unavailable")

        self.executor.register_step_applier(CapabilityAction.ENABLE, applier)
        result = asyncio.run(self.executor.execute(plan.id))

        assert result.success is False
        assert result.status == ExecutionStatus.FAILED
        assert [s.status for s in result.steps] == [
            StepStatus.SUCCESS, StepStatus.SUCCESS, StepStatus.FAILED, StepStatus.SKIPPED,
        ]
        assert "flag service unavailable" in result.steps[2].error
        assert result.errors[0].capability_ids == ["c3"]
        assert self.executor.get_plan(plan.id).status == PlanStatus.FAILED
        assert [c.step_index for c in self.executor.list_checkpoints(result.execution_id)] == [1, 2]
        assert self.registry.enablement_map() == {"c1": True, "c2": True, "c3": False, "c4": False}
        assert self._actions("step_failed")[0].success is False
        assert self._actions("execution_failed")[0].success is False

    def test_async_step_applier(self):
        applied = []

        async def applier(step):
            await asyncio.sleep(0)
            applied.append(step.capability_id)

        self.executor.register_step_applier(CapabilityAction.ENABLE, applier)
        plan = self._approved_plan("c3")
        result = asyncio.run(self.executor.execute(plan.id))
        assert result.success is True
        assert applied == ["c1", "c2", "c3"]

    def test_applier_not_called_on_dry_run(self):
        calls = []
        self.executor.register_step_applier(CapabilityAction.ENABLE, calls.append)
        plan = self._approved_plan("c3")
        asyncio.run(self.executor.execute(plan.id, dry_run=True))
        assert calls == []

    def test_checkpoint_write_failure_reverts_step(self):
        self.setup_harness(_chain(3), checkpoints=_FailingCheckpointStore(fail_at=2))
        plan = self._approved_plan("c3")
        result = asyncio.run(self.executor.execute(plan.id))

        assert result.success is False
        assert result.errors[0].code == "checkpoint_write_failed"
        assert self.registry.enablement_map() == {"c1": True, "c2": False, "c3": False}
        assert [c.step_index for c in self.checkpoints.list(result.execution_id)] == [1]

    def test_step_rechecks_dependencies(self):
        plan = self._approved_plan("c3")
        # c1 is dropped from the catalog between planning and execution.
        self.registry.clear()
        self.registry.register(
            CapabilityRegistry(catalog=_chain(3)[1:], environ={}).discover()
        )
        result = asyncio.run(self.executor.execute(plan.id))
        assert result.success is False
        assert result.steps[0].status == StepStatus.FAILED

    def test_stale_plans_cannot_enable_exclusive_pair(self):
        self.setup_harness([_cap("x", conflicts_with=["y"]), _cap("y")])
        # Both plans come from simulations taken while the other side was off.
        plan_x = self._approved_plan("x")
        plan_y = self._approved_plan("y")

        first = asyncio.run(self.executor.execute(plan_x.id))
        second = asyncio.run(self.executor.execute(plan_y.id))

        assert first.success is True
        assert second.success is False
        assert "mutually exclusive" in second.steps[0].error
        assert self.registry.enablement_map() == {"x": True, "y": False}
        assert self.executor.get_plan(plan_y.id).status == PlanStatus.FAILED

    def test_interrupted_run_is_audited(self):
        self.setup_harness(_chain(3), checkpoints=_UnmountedCheckpointStore())
        plan = self._approved_plan("c3")
        with pytest.raises(RuntimeError):
            asyncio.run(self.executor.execute(plan.id, actor="carol"))

        failed = self._actions("execution_failed")
        assert len(failed) == 1
        assert failed[0].success is False
        assert failed[0].actor == "carol"
        assert failed[0].metadata["interrupted"] is True
        assert self.executor.get_plan(plan.id).status == PlanStatus.FAILED

    def test_audit_failure_does_not_mask_interruption(self):
        self.setup_harness(_chain(3), checkpoints=_UnmountedCheckpointStore(), audit=_LockedAuditLog())
        plan = self._approved_plan("c3")
        with pytest.raises(RuntimeError, match="checkpoint volume unmounted"):
            asyncio.run(self.executor.execute(plan.id))
        assert self._actions("execution_failed") == []

    def test_concurrent_execution_rejected(self):
        plan = self._approved_plan("c3")

        async def scenario():
            gate = asyncio.Event()

            async def applier(step):
                await gate.wait()

            self.executor.register_step_applier(CapabilityAction.ENABLE, applier)
            first = asyncio.create_task(self.executor.execute(plan.id))
            await asyncio.sleep(0.01)
            with pytest.raises(ConflictError) as exc:
                await self.executor.execute(plan.id)
            gate.set()
            return exc.value, await first

        error, result = asyncio.run(scenario())
        assert error.reasons[0].code == "execution_in_flight"
        assert result.success is True

    def test_cancel_stops_before_next_step(self):
        plan = self._approved_plan("c3")

        async def scenario():
            gate = asyncio.Event()

            async def applier(step):
                await gate.wait()

            self.executor.register_step_applier(CapabilityAction.ENABLE, applier)
            task = asyncio.create_task(self.executor.execute(plan.id, actor="carol"))
            await asyncio.sleep(0.01)
            running = self.executor.list_executions(status=ExecutionStatus.RUNNING)
            self.executor.cancel_execution(running[0].execution_id, "dave")
            gate.set()
            return await task

        result = asyncio.run(scenario())
        assert result.status == ExecutionStatus.CANCELLED
        assert result.steps_completed == 1
        assert result.steps_skipped == 2
        assert self.registry.enablement_map() == {"c1": True, "c2": False, "c3": False}
        assert self.executor.get_plan(plan.id).status == PlanStatus.FAILED
        assert len(self._actions("execution_cancelled")) == 1

    def test_cancel_finished_execution_rejected(self):
        plan = self._approved_plan("c3")
        result = asyncio.run(self.executor.execute(plan.id))
        with pytest.raises(ValidationError):
            self.executor.cancel_execution(result.execution_id, "dave")

    def test_list_and_get_executions(self):
        plan = self._approved_plan("c3")
        dry = asyncio.run(self.executor.execute(plan.id, dry_run=True))
        real = asyncio.run(self.executor.execute(plan.id))
        assert self.executor.get_execution(dry.execution_id).dry_run is True
        assert len(self.executor.list_executions()) == 2
        assert len(self.executor.list_executions(limit=1)) == 1
        completed = self.executor.list_executions(status=ExecutionStatus.COMPLETED)
        assert {e.execution_id for e in completed} == {dry.execution_id, real.execution_id}
        assert self.executor.get_execution("exec_missing") is None


class TestRetention(_ExecutorHarness):
    def _run(self, target: str):
        plan = self._approved_plan(target)
        return plan, asyncio.run(self.executor.execute(plan.id))

    def test_terminal_history_beyond_limit_is_archived(self):
        self.setup_harness(_chain(3), config=ControlPlaneConfig(enabled=True, history_limit=2))
        runs = [self._run(target) for target in ("c1", "c2", "c3")]

        (oldest_plan, oldest_run), rest = runs[0], runs[1:]
        assert self.executor.get_plan(oldest_plan.id) is None
        assert self.executor.get_execution(oldest_run.execution_id) is None
        for plan, result in rest:
            assert self.executor.get_plan(plan.id).status == PlanStatus.COMPLETED
            assert self.executor.get_execution(result.execution_id) is not None
        assert len(self.executor.list_executions()) == 2
        # Archiving never touches the audit trail.
        assert len(self._actions("execution_completed")) == 3

    def test_open_plans_survive_execution_pruning(self):
        self.setup_harness(_chain(3), config=ControlPlaneConfig(enabled=True, history_limit=2))
        plan = self._approved_plan("c3")
        for _ in range(4):
            asyncio.run(self.executor.execute(plan.id, dry_run=True))
        assert len(self.executor.list_executions()) == 2
        assert self.executor.get_plan(plan.id).status == PlanStatus.APPROVED

    def test_archived_failed_run_drops_checkpoints(self):
        self.setup_harness(_chain(4), config=ControlPlaneConfig(enabled=True, history_limit=1))
        plan = self._approved_plan("c4")

        def applier(step):
            if step.order == 3:
                raise RuntimeError("boom")

        self.executor.register_step_applier(CapabilityAction.ENABLE, applier)
        failed = asyncio.run(self.executor.execute(plan.id))
        assert self.checkpoints.count() == 2

        self.executor.register_step_applier(CapabilityAction.ENABLE, lambda step: None)
        self._run("c3")
        assert self.executor.get_execution(failed.execution_id) is None
        assert self.checkpoints.list(failed.execution_id) == []


class TestGuards(_ExecutorHarness):
    def _evaluator(self, status: str, quick: bool = False) -> ReadinessEvaluator:
        evaluator = ReadinessEvaluator(ControlPlaneConfig(enabled=True))
        evaluator.register_probe(FunctionProbe("database", "database", lambda: status), blocking=True, quick=quick)
        return evaluator

    def test_change_freeze_blocks_real_runs(self):
        self.setup_harness(_chain(3), config=ControlPlaneConfig(enabled=True, change_freeze_schedule="* * * * *"))
        plan = self._approved_plan("c3")
        with pytest.raises(ValidationError) as exc:
            asyncio.run(self.executor.execute(plan.id))
        assert exc.value.reasons[0].code == "change_freeze"

        dry = asyncio.run(self.executor.execute(plan.id, dry_run=True))
        assert dry.success is True

    def test_in_change_freeze(self):
        night = datetime(2026, 3, 2, 23, 15)
        noon = datetime(2026, 3, 2, 12, 0)
        assert in_change_freeze("* 22-23 * * *", night) is True
        assert in_change_freeze("* 22-23 * * *", noon) is False
        assert in_change_freeze(None, night) is False

    def test_blocked_readiness_rejects(self):
        self.setup_harness(_chain(3), evaluator=self._evaluator("fail"))
        plan = self._approved_plan("c3")
        with pytest.raises(ValidationError) as exc:
            asyncio.run(self.executor.execute(plan.id))
        assert exc.value.reasons[0].code == "readiness_blocked"
        assert self.registry.get("c1").enabled is False

    def test_force_overrides_blocked_readiness(self):
        self.setup_harness(_chain(3), evaluator=self._evaluator("fail"))
        plan = self._approved_plan("c3")
        result = asyncio.run(self.executor.execute(plan.id, actor="carol", force=True))
        assert result.success is True
        assert result.warnings
        override = self._actions("readiness_override")
        assert len(override) == 1
        assert override[0].actor == "carol"

    def test_dry_run_reports_blocked_readiness_as_warning(self):
        self.setup_harness(_chain(3), evaluator=self._evaluator("fail"))
        plan = self._approved_plan("c3")
        result = asyncio.run(self.executor.execute(plan.id, dry_run=True))
        assert result.success is True
        assert "BLOCKED" in result.warnings[0]

    def test_unhealthy_quick_check_halts(self):
        self.setup_harness(_chain(3), evaluator=self._evaluator("fail", quick=True))
        plan = self._approved_plan("c3")
        result = asyncio.run(self.executor.execute(plan.id, force=True))
        assert result.success is False
        assert "Health check failed" in result.steps[0].error
        assert self.registry.enablement_map() == {"c1": False, "c2": False, "c3": False}


class TestRollback(_ExecutorHarness):
    def _failed_run(self):
        self.setup_harness(_chain(4))
        plan = self._approved_plan("c4")

        def applier(step):
            if step.order == 3:
                raise RuntimeError("boom")

        self.executor.register_step_applier(CapabilityAction.ENABLE, applier)
        return asyncio.run(self.executor.execute(plan.id))

    def test_rollback_failed_run_to_last_checkpoint(self):
        result = self._failed_run()
        eligibility = self.executor.can_rollback(result.execution_id)
        assert eligibility.can_rollback is True
        assert eligibility.checkpoint_step == 2
        assert eligibility.rollbackable_steps == 2

        checkpoint = self.executor.get_checkpoint(result.execution_id)
        # Drift after the failure; rollback must restore the checkpointed state.
        self.registry.set_enabled("c1", False)
        self.registry.set_enabled("c4", True)

        rollback = self.executor.rollback(result.execution_id, "alice", "step 3 failed")
        assert rollback.applied is True
        assert rollback.restored_from == "checkpoint"
        assert rollback.checkpoint_step == 2
        assert self.registry.enablement_map() == checkpoint.captured_state
        assert checkpoint.captured_state == {"c1": True, "c2": True, "c3": False, "c4": False}

        plan_id = result.plan_id
        assert self.executor.get_plan(plan_id).status == PlanStatus.ROLLEDBACK
        assert self.executor.get_execution(result.execution_id).status == ExecutionStatus.ROLLEDBACK
        assert len(self._actions("rollback_completed")) == 1

    def test_second_rollback_is_noop(self):
        result = self._failed_run()
        self.executor.rollback(result.execution_id, "alice")
        state = self.registry.enablement_map()
        events = self.audit.count()

        again = self.executor.rollback(result.execution_id, "alice")
        assert again.applied is False
        assert again.changes == []
        assert self.registry.enablement_map() == state
        assert self.audit.count() == events

    def test_rollback_completed_run_restores_baseline(self):
        plan = self._approved_plan("c3")
        result = asyncio.run(self.executor.execute(plan.id))
        assert self.executor.can_rollback(result.execution_id).can_rollback is True

        rollback = self.executor.rollback(result.execution_id, "alice")
        assert rollback.restored_from == "baseline"
        assert len(rollback.changes) == 3
        assert self.registry.enablement_map() == {"c1": False, "c2": False, "c3": False}

    def test_dry_run_cannot_rollback(self):
        plan = self._approved_plan("c3")
        result = asyncio.run(self.executor.execute(plan.id, dry_run=True))
        eligibility = self.executor.can_rollback(result.execution_id)
        assert eligibility.can_rollback is False
        assert eligibility.reasons[0].code == "dry_run"
        with pytest.raises(ValidationError):
            self.executor.rollback(result.execution_id, "alice")
        assert self._actions("rollback_failed")[0].success is False

    def test_failure_before_any_step_has_nothing_to_roll_back(self):
        plan = self._approved_plan("c3")

        def applier(step):
            raise RuntimeError("down")

        self.executor.register_step_applier(CapabilityAction.ENABLE, applier)
        result = asyncio.run(self.executor.execute(plan.id))
        eligibility = self.executor.can_rollback(result.execution_id)
        assert eligibility.can_rollback is False
        assert eligibility.reasons[0].code == "no_checkpoint"

    def test_unknown_execution(self):
        with pytest.raises(NotFoundError):
            self.executor.can_rollback("exec_missing")

    def test_create_checkpoint(self):
        result = self._failed_run()
        checkpoint = self.executor.create_checkpoint(result.execution_id, 10)
        assert checkpoint.captured_state == self.registry.enablement_map()
        assert self.executor.get_checkpoint(result.execution_id).step_index == 10
        assert len(self.executor.list_checkpoints(result.execution_id)) == 3

    def test_rollback_instructions(self):
        result = self._failed_run()
        instructions = self.executor.get_rollback_instructions(result.execution_id)
        assert instructions == ["1. Disable c2", "2. Disable c1"]

    def test_rollback_instructions_use_flags(self):
        self.setup_harness([
            {"id": "rbac", "name": "RBAC", "domain": "governance", "flag": "ENABLE_RBAC"},
        ])
        plan = self._approved_plan("rbac")
        result = asyncio.run(self.executor.execute(plan.id))
        assert self.executor.get_rollback_instructions(result.execution_id) == [
            "1. Disable rbac (set ENABLE_RBAC=false)",
        ]
