"""Tests for the Readiness Evaluator and probes."""

import asyncio
import time

import pytest

from golive_kernel.dependencies.resolver import DependencyResolver
from golive_kernel.models.config import ControlPlaneConfig
from golive_kernel.models.readiness import (
    GoLiveRecommendation,
    ProbeOutcome,
    ProbeStatus,
    ProbeSummary,
    ReadinessStatus,
)
from golive_kernel.readiness.evaluator import ReadinessEvaluator, readiness_score, recommend
from golive_kernel.readiness.probes import FunctionProbe, coerce_outcome, register_builtin_probes
from golive_kernel.registry.store import CapabilityRegistry


def _static_probe(probe_id: str, status: str, category: str = "infra") -> FunctionProbe:
    return FunctionProbe(probe_id, category, lambda: {"status": status, "message": f"{probe_id} {status}"})


def _make_async_probe(probe_id: str, delay: float, status: str = "pass") -> FunctionProbe:
    async def run():
        await asyncio.sleep(delay)
        return ProbeOutcome(status=ProbeStatus(status))
    return FunctionProbe(probe_id, "infra", run)


class _FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestAggregation:
    def setup_method(self):
        self.evaluator = ReadinessEvaluator(ControlPlaneConfig(probe_timeout_ms=1000))

    def test_all_pass_is_ready(self):
        self.evaluator.register_probe(_static_probe("db", "pass"))
        self.evaluator.register_probe(_static_probe("queue", "pass"))
        snapshot = asyncio.run(self.evaluator.evaluate_readiness())
        assert snapshot.status == ReadinessStatus.READY
        assert snapshot.summary.total == 2
        assert snapshot.summary.passed == 2
        assert [r.probe_id for r in snapshot.probe_results] == ["db", "queue"]

    def test_blocking_failure_is_blocked(self):
        self.evaluator.register_probe(_static_probe("db", "fail"), blocking=True)
        self.evaluator.register_probe(_static_probe("queue", "pass"))
        snapshot = asyncio.run(self.evaluator.evaluate_readiness())
        assert snapshot.status == ReadinessStatus.BLOCKED
        assert snapshot.blocking_issues == ["db"]

    def test_non_blocking_failure_is_degraded(self):
        self.evaluator.register_probe(_static_probe("search", "fail"), blocking=False)
        self.evaluator.register_probe(_static_probe("db", "pass"))
        snapshot = asyncio.run(self.evaluator.evaluate_readiness())
        assert snapshot.status == ReadinessStatus.DEGRADED
        assert snapshot.warnings == ["search"]
        assert snapshot.blocking_issues == []

    def test_warning_is_degraded(self):
        self.evaluator.register_probe(_static_probe("db", "warn"))
        snapshot = asyncio.run(self.evaluator.evaluate_readiness())
        assert snapshot.status == ReadinessStatus.DEGRADED
        assert snapshot.summary.warned == 1

    def test_no_probes_is_ready(self):
        snapshot = asyncio.run(self.evaluator.evaluate_readiness())
        assert snapshot.status == ReadinessStatus.READY
        assert snapshot.summary.total == 0

    def test_category_filter(self):
        self.evaluator.register_probe(_static_probe("db", "fail", category="database"))
        self.evaluator.register_probe(_static_probe("queue", "pass", category="queues"))
        snapshot = asyncio.run(self.evaluator.evaluate_category("queues"))
        assert snapshot.status == ReadinessStatus.READY
        assert snapshot.categories == ["queues"]
        assert [r.probe_id for r in snapshot.probe_results] == ["queue"]

    def test_available_probes(self):
        self.evaluator.register_probe(_static_probe("db", "pass", category="database"), quick=True)
        self.evaluator.register_probe(_static_probe("ai", "pass", category="ai"), blocking=False, timeout_ms=50)
        infos = self.evaluator.get_available_probes()
        assert [p.id for p in infos] == ["ai", "db"]
        assert infos[0].timeout_ms == 50
        assert infos[0].blocking is False
        assert infos[1].quick is True
        assert self.evaluator.categories() == ["ai", "database"]

    def test_unregister(self):
        self.evaluator.register_probe(_static_probe("db", "fail"))
        assert self.evaluator.unregister_probe("db") is True
        assert self.evaluator.unregister_probe("db") is False
        snapshot = asyncio.run(self.evaluator.evaluate_readiness())
        assert snapshot.status == ReadinessStatus.READY


class TestProbeIsolation:
    def setup_method(self):
        self.evaluator = ReadinessEvaluator(ControlPlaneConfig(probe_timeout_ms=1000))

    def test_timeout_becomes_failure(self):
        self.evaluator.register_probe(_make_async_probe("slow", delay=5), timeout_ms=50)
        self.evaluator.register_probe(_make_async_probe("fast", delay=0))

        results = asyncio.run(self.evaluator.run_all_probes())
        by_id = {r.probe_id: r for r in results}
        assert by_id["slow"].status == ProbeStatus.FAIL
        assert by_id["slow"].timed_out is True
        assert by_id["slow"].duration_ms == 50
        assert by_id["fast"].status == ProbeStatus.PASS

    def test_slow_probe_does_not_stall_batch(self):
        for i in range(5):
            self.evaluator.register_probe(_make_async_probe(f"p{i}", delay=0.2))
        start = time.monotonic()
        results = asyncio.run(self.evaluator.run_all_probes())
        assert len(results) == 5
        assert time.monotonic() - start < 0.9

    def test_exception_becomes_failure(self):
        def explode():
            raise ConnectionError("database unreachable")

        self.evaluator.register_probe(FunctionProbe("db", "database", explode), timeout_ms=200)
        self.evaluator.register_probe(_static_probe("queue", "pass"))

        snapshot = asyncio.run(self.evaluator.evaluate_readiness())
        by_id = {r.probe_id: r for r in snapshot.probe_results}
        assert by_id["db"].status == ProbeStatus.FAIL
        assert "database unreachable" in by_id["db"].message
        assert by_id["db"].duration_ms == 200
        assert by_id["queue"].status == ProbeStatus.PASS
        assert snapshot.status == ReadinessStatus.BLOCKED

    def test_async_probe_exception_isolated(self):
        async def explode():
            raise RuntimeError("provider down")

        self.evaluator.register_probe(FunctionProbe("ai", "ai", explode), blocking=False)
        snapshot = asyncio.run(self.evaluator.evaluate_readiness())
        assert snapshot.status == ReadinessStatus.DEGRADED


class TestCaching:
    def setup_method(self):
        self.clock = _FakeClock()
        self.calls = 0
        self.evaluator = ReadinessEvaluator(
            ControlPlaneConfig(readiness_cache_ttl_seconds=30), clock=self.clock,
        )

        def counted():
            self.calls += 1
            return "pass"

        self.evaluator.register_probe(FunctionProbe("db", "database", counted))

    def test_cache_hit_within_ttl(self):
        first = asyncio.run(self.evaluator.evaluate_readiness())
        self.clock.now += 10
        second = asyncio.run(self.evaluator.evaluate_readiness())
        assert second is first
        assert self.calls == 1

    def test_cache_expires_after_ttl(self):
        asyncio.run(self.evaluator.evaluate_readiness())
        self.clock.now += 31
        asyncio.run(self.evaluator.evaluate_readiness())
        assert self.calls == 2

    def test_use_cache_false_bypasses(self):
        first = asyncio.run(self.evaluator.evaluate_readiness())
        second = asyncio.run(self.evaluator.evaluate_readiness(use_cache=False))
        assert second is not first
        assert self.calls == 2
        assert self.evaluator.get_cached_snapshot() is second

    def test_filtered_evaluation_not_cached(self):
        asyncio.run(self.evaluator.evaluate_category("database"))
        assert self.evaluator.get_cached_snapshot() is None

    def test_clear_cache(self):
        asyncio.run(self.evaluator.evaluate_readiness())
        self.evaluator.clear_cache()
        assert self.evaluator.get_cached_snapshot() is None


class TestQuickHealth:
    def test_runs_only_quick_probes(self):
        evaluator = ReadinessEvaluator()
        evaluator.register_probe(_static_probe("db", "pass"), quick=True)
        evaluator.register_probe(_static_probe("slow_ai", "fail"), blocking=True)
        health = asyncio.run(evaluator.quick_health_check())
        assert health.healthy is True
        assert health.status == ReadinessStatus.READY

    def test_quick_blocking_failure_is_unhealthy(self):
        evaluator = ReadinessEvaluator()
        evaluator.register_probe(_static_probe("db", "fail"), quick=True)
        health = asyncio.run(evaluator.quick_health_check())
        assert health.healthy is False
        assert "db" in health.message


class TestRecommendation:
    def test_score(self):
        assert readiness_score(ProbeSummary(total=4, passed=3, warned=1, failed=0)) == 88
        assert readiness_score(ProbeSummary(total=2, passed=2)) == 100
        assert readiness_score(ProbeSummary()) == 100

    @pytest.mark.parametrize("status,score,expected", [
        (ReadinessStatus.READY, 100, GoLiveRecommendation.PROCEED),
        (ReadinessStatus.READY, 90, GoLiveRecommendation.PROCEED),
        (ReadinessStatus.READY, 89, GoLiveRecommendation.PROCEED_WITH_CAUTION),
        (ReadinessStatus.DEGRADED, 95, GoLiveRecommendation.PROCEED_WITH_CAUTION),
        (ReadinessStatus.DEGRADED, 10, GoLiveRecommendation.PROCEED_WITH_CAUTION),
        (ReadinessStatus.BLOCKED, 100, GoLiveRecommendation.DO_NOT_PROCEED),
        (ReadinessStatus.BLOCKED, 0, GoLiveRecommendation.DO_NOT_PROCEED),
    ])
    def test_recommend(self, status, score, expected):
        assert recommend(status, score, 90) == expected

    def test_do_not_proceed_iff_blocked(self):
        for status in ReadinessStatus:
            for score in range(0, 101, 5):
                blocked = recommend(status, score, 90) == GoLiveRecommendation.DO_NOT_PROCEED
                assert blocked == (status == ReadinessStatus.BLOCKED)

    def test_go_live_readiness(self):
        evaluator = ReadinessEvaluator()
        evaluator.register_probe(_static_probe("db", "pass"))
        evaluator.register_probe(_static_probe("search", "warn"), blocking=False)
        readiness = asyncio.run(evaluator.get_go_live_readiness())
        assert readiness.can_go_live is True
        assert readiness.status == ReadinessStatus.DEGRADED
        assert readiness.score == 75
        assert readiness.recommendation == GoLiveRecommendation.PROCEED_WITH_CAUTION


class TestProbes:
    def test_coerce_outcome(self):
        assert coerce_outcome(True, 1.0).status == ProbeStatus.PASS
        assert coerce_outcome(False, 1.0).status == ProbeStatus.FAIL
        assert coerce_outcome("warn", 1.0).status == ProbeStatus.WARN
        assert coerce_outcome({"status": "pass", "duration_ms": 7}, 1.0).duration_ms == 7
        assert coerce_outcome(ProbeOutcome(status=ProbeStatus.PASS), 2.5).duration_ms == 2.5
        with pytest.raises(TypeError):
            coerce_outcome(42, 1.0)

    def test_builtin_probes_ready_on_valid_catalog(self):
        registry = CapabilityRegistry(environ={})
        registry.discover_and_register()
        config = ControlPlaneConfig(enabled=True)
        evaluator = ReadinessEvaluator(config)
        register_builtin_probes(evaluator, DependencyResolver(registry))

        snapshot = asyncio.run(evaluator.evaluate_readiness())
        assert snapshot.status == ReadinessStatus.READY
        assert {p.id for p in evaluator.get_available_probes()} == {
            "dependency_graph", "capability_states", "kill_switch", "control_plane_enabled",
        }

    def test_kill_switch_blocks(self):
        registry = CapabilityRegistry(catalog=[], environ={})
        evaluator = ReadinessEvaluator(ControlPlaneConfig(enabled=True, kill_switch=True))
        register_builtin_probes(evaluator, DependencyResolver(registry))
        snapshot = asyncio.run(evaluator.evaluate_readiness())
        assert snapshot.status == ReadinessStatus.BLOCKED
        assert snapshot.blocking_issues == ["kill_switch"]

    def test_cycle_blocks(self):
        registry = CapabilityRegistry(catalog=[
            {"id": "a", "name": "A", "domain": "platform", "depends_on": ["b"]},
            {"id": "b", "name": "B", "domain": "platform", "depends_on": ["a"]},
        ], environ={})
        registry.discover_and_register()
        evaluator = ReadinessEvaluator(ControlPlaneConfig(enabled=True))
        register_builtin_probes(evaluator, DependencyResolver(registry))
        snapshot = asyncio.run(evaluator.evaluate_readiness())
        assert snapshot.status == ReadinessStatus.BLOCKED
        assert "dependency_graph" in snapshot.blocking_issues
