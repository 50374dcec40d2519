"""
Readiness Evaluator — runs probes and aggregates environment health.

Behavioral Contract:
- Every probe runs concurrently under its own timeout
- A probe that times out or raises becomes a `fail` result; the batch never aborts
- BLOCKED if a blocking probe fails, DEGRADED on any warn or non-blocking fail,
  otherwise READY
- One global snapshot is cached with a TTL; it is replaced, never mutated
- DO_NOT_PROCEED is recommended if and only if the status is BLOCKED
"""

import asyncio
import inspect
import logging
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from golive_kernel.models.config import ControlPlaneConfig
from golive_kernel.models.readiness import (
    GoLiveReadiness,
    GoLiveRecommendation,
    ProbeInfo,
    ProbeResult,
    ProbeStatus,
    ProbeSummary,
    QuickHealth,
    ReadinessSnapshot,
    ReadinessStatus,
)
from golive_kernel.readiness.probes import coerce_outcome

logger = logging.getLogger(__name__)


class ProbeRegistration:
    """A probe reference plus how the evaluator treats it."""

    def __init__(self, probe, blocking: bool, quick: bool, timeout_ms: int):
        self.probe = probe
        self.blocking = blocking
        self.quick = quick
        self.timeout_ms = timeout_ms

    @property
    def id(self) -> str:
        return self.probe.id

    @property
    def category(self) -> str:
        return self.probe.category

    def info(self) -> ProbeInfo:
        return ProbeInfo(
            id=self.id,
            category=self.category,
            blocking=self.blocking,
            quick=self.quick,
            timeout_ms=self.timeout_ms,
        )


def aggregate(results: Sequence[ProbeResult]) -> Tuple[ReadinessStatus, ProbeSummary, List[str], List[str]]:
    """Fold probe results into (status, summary, blocking_issues, warnings)."""
    blocking_issues = []
    warnings = []
    passed = warned = failed = 0
    for r in results:
        if r.status == ProbeStatus.PASS:
            passed += 1
        elif r.status == ProbeStatus.WARN:
            warned += 1
            warnings.append(r.probe_id)
        else:
            failed += 1
            if r.blocking:
                blocking_issues.append(r.probe_id)
            else:
                warnings.append(r.probe_id)

    if blocking_issues:
        status = ReadinessStatus.BLOCKED
    elif warnings:
        status = ReadinessStatus.DEGRADED
    else:
        status = ReadinessStatus.READY

    summary = ProbeSummary(total=len(results), passed=passed, warned=warned, failed=failed)
    return status, summary, blocking_issues, warnings


def readiness_score(summary: ProbeSummary) -> int:
    """Percentage of passing probes, counting a warning as half a pass."""
    if summary.total == 0:
        return 100
    return round(100 * (summary.passed + 0.5 * summary.warned) / summary.total)


def recommend(status: ReadinessStatus, score: int, proceed_threshold: int) -> GoLiveRecommendation:
    """
    BLOCKED → DO_NOT_PROCEED (and nothing else maps there).
    READY with score ≥ threshold → PROCEED. Everything else → PROCEED_WITH_CAUTION.
    """
    if status == ReadinessStatus.BLOCKED:
        return GoLiveRecommendation.DO_NOT_PROCEED
    if status == ReadinessStatus.READY and score >= proceed_threshold:
        return GoLiveRecommendation.PROCEED
    return GoLiveRecommendation.PROCEED_WITH_CAUTION


def _recommendations(results: Sequence[ProbeResult], status: ReadinessStatus) -> List[str]:
    recs = []
    for r in results:
        if r.status == ProbeStatus.FAIL and r.blocking:
            recs.append(f"Resolve blocking probe '{r.probe_id}' ({r.category}): {r.message}")
        elif r.status == ProbeStatus.FAIL:
            recs.append(f"Investigate failing probe '{r.probe_id}' ({r.category}): {r.message}")
        elif r.status == ProbeStatus.WARN:
            recs.append(f"Review warning from '{r.probe_id}' ({r.category}): {r.message}")
    if status == ReadinessStatus.READY:
        recs.append("All readiness probes passed")
    return recs


class ReadinessEvaluator:
    """Probe registry, concurrent runner and snapshot cache."""

    def __init__(
        self,
        config: Optional[ControlPlaneConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or ControlPlaneConfig()
        self._clock = clock
        self._probes: Dict[str, ProbeRegistration] = {}
        self._cached: Optional[ReadinessSnapshot] = None
        self._cached_at: float = 0.0

    # --- Probe registry ---

    def register_probe(
        self,
        probe,
        blocking: bool = True,
        quick: bool = False,
        timeout_ms: Optional[int] = None,
    ) -> None:
        """Register (or replace) a probe by id."""
        self._probes[probe.id] = ProbeRegistration(
            probe=probe,
            blocking=blocking,
            quick=quick,
            timeout_ms=timeout_ms or self.config.probe_timeout_ms,
        )

    def unregister_probe(self, probe_id: str) -> bool:
        return self._probes.pop(probe_id, None) is not None

    def get_available_probes(self) -> List[ProbeInfo]:
        return [self._probes[pid].info() for pid in sorted(self._probes)]

    def categories(self) -> List[str]:
        return sorted({reg.category for reg in self._probes.values()})

    # --- Running ---

    async def run_all_probes(self, categories: Optional[Sequence[str]] = None) -> List[ProbeResult]:
        """Run every (matching) probe concurrently; results ordered by probe id."""
        regs = [
            self._probes[pid] for pid in sorted(self._probes)
            if categories is None or self._probes[pid].category in categories
        ]
        return await self._run(regs)

    async def run_probes_by_category(self, category: str) -> List[ProbeResult]:
        return await self.run_all_probes(categories=[category])

    async def _run(self, regs: Sequence[ProbeRegistration]) -> List[ProbeResult]:
        if not regs:
            return []
        return list(await asyncio.gather(*(self._run_probe(reg) for reg in regs)))

    async def _run_probe(self, reg: ProbeRegistration) -> ProbeResult:
        start = time.monotonic()
        try:
            raw = await asyncio.wait_for(self._invoke(reg.probe), timeout=reg.timeout_ms / 1000)
            outcome = coerce_outcome(raw, (time.monotonic() - start) * 1000)
        except asyncio.TimeoutError:
            logger.warning("Probe %s timed out after %dms", reg.id, reg.timeout_ms)
            return ProbeResult(
                probe_id=reg.id,
                category=reg.category,
                status=ProbeStatus.FAIL,
                duration_ms=reg.timeout_ms,
                message=f"Timed out after {reg.timeout_ms}ms",
                blocking=reg.blocking,
                timed_out=True,
            )
        except Exception as e:
            logger.warning("Probe %s raised %s: %s", reg.id, type(e).__name__, e)
            return ProbeResult(
                probe_id=reg.id,
                category=reg.category,
                status=ProbeStatus.FAIL,
                duration_ms=reg.timeout_ms,
                message=f"{type(e).__name__}: {e}",
                blocking=reg.blocking,
            )

        return ProbeResult(
            probe_id=reg.id,
            category=reg.category,
            status=outcome.status,
            duration_ms=outcome.duration_ms,
            message=outcome.message,
            blocking=reg.blocking,
        )

    async def _invoke(self, probe):
        run = probe.run
        if inspect.iscoroutinefunction(run):
            return await run()
        result = await asyncio.to_thread(run)
        if inspect.isawaitable(result):
            result = await result
        return result

    # --- Evaluation ---

    def _build_snapshot(
        self,
        results: Sequence[ProbeResult],
        categories: Optional[Sequence[str]] = None,
    ) -> ReadinessSnapshot:
        status, summary, blocking, warnings = aggregate(results)
        return ReadinessSnapshot(
            timestamp=datetime.utcnow(),
            status=status,
            probe_results=list(results),
            summary=summary,
            blocking_issues=blocking,
            warnings=warnings,
            recommendations=_recommendations(results, status),
            categories=list(categories) if categories else None,
        )

    def get_cached_snapshot(self) -> Optional[ReadinessSnapshot]:
        """The cached snapshot if it is still within its TTL."""
        if self._cached is None:
            return None
        if self._clock() - self._cached_at > self.config.readiness_cache_ttl_seconds:
            return None
        return self._cached

    def clear_cache(self) -> None:
        self._cached = None
        self._cached_at = 0.0

    async def evaluate_readiness(
        self,
        use_cache: bool = True,
        categories: Optional[Sequence[str]] = None,
    ) -> ReadinessSnapshot:
        """
        Aggregate all probes into one snapshot. Only unfiltered evaluations
        are cached; `use_cache=False` always runs the probes.
        """
        if categories:
            return self._build_snapshot(await self.run_all_probes(categories), categories)

        if use_cache:
            cached = self.get_cached_snapshot()
            if cached is not None:
                return cached

        snapshot = self._build_snapshot(await self.run_all_probes())
        self._cached = snapshot
        self._cached_at = self._clock()
        if snapshot.status != ReadinessStatus.READY:
            logger.warning(
                "Readiness %s: blocking=%s warnings=%s",
                snapshot.status.value, snapshot.blocking_issues, snapshot.warnings,
            )
        return snapshot

    async def evaluate_category(self, category: str) -> ReadinessSnapshot:
        return await self.evaluate_readiness(use_cache=False, categories=[category])

    async def quick_health_check(self) -> QuickHealth:
        """Run only the cheap probes registered with quick=True."""
        regs = [self._probes[pid] for pid in sorted(self._probes) if self._probes[pid].quick]
        results = await self._run(regs)
        status, _, blocking, warnings = aggregate(results)

        if status == ReadinessStatus.BLOCKED:
            message = f"Blocked by: {', '.join(blocking)}"
        elif status == ReadinessStatus.DEGRADED:
            message = f"Degraded: {', '.join(warnings)}"
        elif not regs:
            message = "No quick probes registered"
        else:
            message = "All quick probes passed"

        return QuickHealth(
            healthy=status != ReadinessStatus.BLOCKED,
            status=status,
            message=message,
            checked_at=datetime.utcnow(),
        )

    async def get_go_live_readiness(self, use_cache: bool = True) -> GoLiveReadiness:
        snapshot = await self.evaluate_readiness(use_cache=use_cache)
        score = readiness_score(snapshot.summary)
        return GoLiveReadiness(
            can_go_live=snapshot.status != ReadinessStatus.BLOCKED,
            status=snapshot.status,
            score=score,
            recommendation=recommend(snapshot.status, score, self.config.proceed_score_threshold),
            blocking_issues=snapshot.blocking_issues,
            warnings=snapshot.warnings,
            snapshot=snapshot,
        )
