"""
Readiness probes.

A probe is any object with `id`, `category` and a `run()` (sync or async)
that returns a ProbeOutcome, a dict with a `status`, or a bare status. The
evaluator depends only on that shape. Infrastructure probes (database, queues,
providers) belong to the host application; the probes below cover the control
plane's own preconditions.
"""

import time
from typing import Any, Callable, Optional

from golive_kernel.dependencies.resolver import DependencyResolver
from golive_kernel.models.config import ControlPlaneConfig
from golive_kernel.models.readiness import ProbeOutcome, ProbeStatus


class FunctionProbe:
    """Adapts a plain callable (sync or async) to the probe shape."""

    def __init__(self, probe_id: str, category: str, fn: Callable[[], Any]):
        self.id = probe_id
        self.category = category
        self.run = fn

    def __repr__(self) -> str:
        return f"FunctionProbe(id={self.id!r}, category={self.category!r})"


def coerce_outcome(result: Any, elapsed_ms: float) -> ProbeOutcome:
    """Normalize whatever a probe returned into a ProbeOutcome."""
    if isinstance(result, ProbeOutcome):
        outcome = result
    elif isinstance(result, dict):
        outcome = ProbeOutcome.model_validate(result)
    elif isinstance(result, (ProbeStatus, str)):
        outcome = ProbeOutcome(status=ProbeStatus(result))
    elif isinstance(result, bool):
        outcome = ProbeOutcome(status=ProbeStatus.PASS if result else ProbeStatus.FAIL)
    else:
        raise TypeError(f"Unsupported probe result: {result!r}")

    if not outcome.duration_ms:
        outcome = outcome.model_copy(update={"duration_ms": round(elapsed_ms, 3)})
    return outcome


# --- Built-in probes ---

def dependency_graph_probe(resolver: DependencyResolver) -> FunctionProbe:
    """Fails when any dependency is missing or the graph has a cycle."""

    def run() -> ProbeOutcome:
        start = time.monotonic()
        validation = resolver.validate_dependencies()
        elapsed = (time.monotonic() - start) * 1000
        if validation.valid:
            return ProbeOutcome(status=ProbeStatus.PASS, duration_ms=elapsed,
                                message="Dependency graph is valid")
        parts = []
        if validation.missing_dependencies:
            parts.append(
                "missing: " + ", ".join(
                    f"{m.capability_id}->{m.missing_id}"
                    for m in validation.missing_dependencies
                )
            )
        if validation.circular_dependencies:
            parts.append(
                "cycles: " + "; ".join(
                    " -> ".join(c) for c in validation.circular_dependencies
                )
            )
        return ProbeOutcome(status=ProbeStatus.FAIL, duration_ms=elapsed, message="; ".join(parts))

    return FunctionProbe("dependency_graph", "dependencies", run)


def capability_state_probe(resolver: DependencyResolver) -> FunctionProbe:
    """Warns when an enabled capability relies on a disabled one."""

    def run() -> ProbeOutcome:
        report = resolver.detect_invalid_states()
        if not report.has_invalid_states:
            return ProbeOutcome(status=ProbeStatus.PASS, message="No invalid capability states")
        return ProbeOutcome(
            status=ProbeStatus.WARN,
            message="; ".join(issue.message for issue in report.issues),
        )

    return FunctionProbe("capability_states", "capabilities", run)


def kill_switch_probe(config: ControlPlaneConfig) -> FunctionProbe:
    def run() -> ProbeOutcome:
        if config.kill_switch:
            return ProbeOutcome(status=ProbeStatus.FAIL, message="Global kill switch is engaged")
        return ProbeOutcome(status=ProbeStatus.PASS, message="Kill switch is off")

    return FunctionProbe("kill_switch", "kill_switch", run)


def control_plane_flag_probe(config: ControlPlaneConfig) -> FunctionProbe:
    def run() -> ProbeOutcome:
        if config.enabled:
            return ProbeOutcome(status=ProbeStatus.PASS, message="ENABLE_GLCP is set")
        return ProbeOutcome(status=ProbeStatus.WARN, message="ENABLE_GLCP is not set")

    return FunctionProbe("control_plane_enabled", "configuration", run)


def register_builtin_probes(
    evaluator,
    resolver: DependencyResolver,
    config: Optional[ControlPlaneConfig] = None,
) -> None:
    """Register the control plane's own probes on an evaluator."""
    config = config or evaluator.config
    evaluator.register_probe(dependency_graph_probe(resolver), blocking=True, quick=True)
    evaluator.register_probe(capability_state_probe(resolver), blocking=False)
    evaluator.register_probe(kill_switch_probe(config), blocking=True, quick=True)
    evaluator.register_probe(control_plane_flag_probe(config), blocking=False)
