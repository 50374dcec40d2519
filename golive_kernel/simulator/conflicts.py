"""
Conflict Detector — flags mutually exclusive or blocked combinations in a
proposed end-state.

Capability definitions (depends_on, conflicts_with, risk) come from the
registry; enablement comes only from the caller-supplied projected (and
optionally current) state maps, never from the registry's live flags.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Set

from golive_kernel.dependencies.resolver import CapabilityGraph
from golive_kernel.models.capability import Capability, CapabilityAction, RiskLevel
from golive_kernel.models.simulation import (
    Conflict,
    ConflictSeverity,
    ConflictType,
    SimulationAction,
)
from golive_kernel.registry.store import CapabilityRegistry


_SEVERITY_ORDER = {
    ConflictSeverity.ERROR: 0,
    ConflictSeverity.WARNING: 1,
    ConflictSeverity.INFO: 2,
}


def has_blocking_conflicts(conflicts: Iterable[Conflict]) -> bool:
    """True if any conflict has error severity."""
    return any(c.severity == ConflictSeverity.ERROR for c in conflicts)


class ConflictDetector:

    def __init__(self, registry: CapabilityRegistry):
        self.registry = registry

    def detect_conflicts(
        self,
        actions: Iterable[SimulationAction],
        projected_state: Mapping[str, bool],
        current_state: Optional[Mapping[str, bool]] = None,
    ) -> List[Conflict]:
        """
        Check the projected end-state of `actions`. With `current_state`, also
        report no-op actions, affected dependents and critical-risk changes.
        """
        caps: Dict[str, Capability] = {c.id: c for c in self.registry.get_all()}
        graph = CapabilityGraph(caps.values())
        in_cycle: Set[str] = {cid for cycle in graph.find_cycles() for cid in cycle}

        found: Dict[tuple, Conflict] = {}

        def add(conflict_type: ConflictType, severity: ConflictSeverity,
                affected: List[str], message: str, ordered: bool = False) -> None:
            key = (conflict_type, tuple(affected) if ordered else tuple(sorted(affected)))
            if key not in found:
                found[key] = Conflict(
                    type=conflict_type,
                    severity=severity,
                    affected_capabilities=affected,
                    message=message,
                )

        for action in actions:
            cid = action.capability_id
            cap = caps.get(cid)
            if cap is None:
                add(ConflictType.UNKNOWN_CAPABILITY, ConflictSeverity.ERROR, [cid],
                    f"Capability {cid} is not registered")
                continue

            touched = self._touched(graph, cid, action.action)

            for tid in sorted(touched):
                if tid in in_cycle:
                    add(ConflictType.CIRCULAR_DEPENDENCY, ConflictSeverity.ERROR, [tid],
                        f"{tid} is part of a dependency cycle")

            for tid in sorted(touched):
                if not projected_state.get(tid, False):
                    continue
                self._check_exclusions(caps[tid], caps, projected_state, add)
                self._check_dependencies(caps[tid], caps, projected_state, add)

            if not projected_state.get(cid, False):
                for dependent in self._enabled_dependents(graph, cid, projected_state):
                    add(ConflictType.DEPENDENCY_MISSING, ConflictSeverity.ERROR, [dependent, cid],
                        f"{dependent} stays enabled but depends on {cid}, which would be disabled",
                        ordered=True)

            if current_state is not None:
                self._check_transition(cap, graph, action, projected_state, current_state, caps, add)

        return sorted(
            found.values(),
            key=lambda c: (_SEVERITY_ORDER[c.severity], c.type.value, c.affected_capabilities),
        )

    def has_blocking_conflicts(self, conflicts: Iterable[Conflict]) -> bool:
        return has_blocking_conflicts(conflicts)

    # --- Checks ---

    def _touched(self, graph: CapabilityGraph, cid: str, action: CapabilityAction) -> Set[str]:
        """The action's capability plus its dependency closure (enable) or itself (disable)."""
        node = graph.index[cid]
        if action == CapabilityAction.DISABLE:
            return {cid}
        return {graph.ids[i] for i in graph.closure([node])}

    def _check_exclusions(self, cap: Capability, caps, projected_state, add) -> None:
        for other_id in sorted(caps):
            if other_id == cap.id or not projected_state.get(other_id, False):
                continue
            other = caps[other_id]
            if other_id in cap.conflicts_with or cap.id in other.conflicts_with:
                add(ConflictType.MUTUAL_EXCLUSION, ConflictSeverity.ERROR, [cap.id, other_id],
                    f"{cap.id} and {other_id} are mutually exclusive and would both be enabled")

    def _check_dependencies(self, cap: Capability, caps, projected_state, add) -> None:
        for dep in sorted(cap.depends_on):
            if dep not in caps:
                add(ConflictType.DEPENDENCY_MISSING, ConflictSeverity.ERROR, [cap.id, dep],
                    f"{cap.id} depends on {dep}, which is not registered", ordered=True)
            elif not projected_state.get(dep, False):
                add(ConflictType.DEPENDENCY_MISSING, ConflictSeverity.ERROR, [cap.id, dep],
                    f"{cap.id} would be enabled while its dependency {dep} is disabled",
                    ordered=True)

    def _enabled_dependents(self, graph: CapabilityGraph, cid: str, projected_state) -> List[str]:
        node = graph.index[cid]
        return [
            graph.ids[i] for i in graph.dependents[node]
            if projected_state.get(graph.ids[i], False)
        ]

    def _check_transition(self, cap, graph, action, projected_state, current_state, caps, add) -> None:
        cid = cap.id
        before = current_state.get(cid, False)
        after = projected_state.get(cid, False)
        if before == after:
            add(ConflictType.NO_CHANGE, ConflictSeverity.INFO, [cid],
                f"{cid} is already {'enabled' if after else 'disabled'}")
            return

        if cap.risk_level == RiskLevel.CRITICAL:
            add(ConflictType.HIGH_RISK, ConflictSeverity.WARNING, [cid],
                f"{cid} is a critical-risk capability")

        if not after:
            node = graph.index[cid]
            cascaded = sorted(
                graph.ids[i] for i in graph.closure([node], reverse=True)
                if i != node
                and current_state.get(graph.ids[i], False)
                and not projected_state.get(graph.ids[i], False)
            )
            if cascaded:
                add(ConflictType.DEPENDENTS_AFFECTED, ConflictSeverity.WARNING, [cid] + cascaded,
                    f"Disabling {cid} also disables {', '.join(cascaded)}", ordered=True)
