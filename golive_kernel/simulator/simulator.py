"""
Rollout Simulator — non-mutating feasibility and impact analysis.

Behavioral Contract:
- Reads the registry, never writes it
- Delegates ordering to the Dependency Resolver and blocking checks to the
  Conflict Detector
- feasible = no blocking conflicts and a valid dependency graph
- Referentially transparent: the simulation id is a hash of the registry's
  definitions, its enablement and the normalized actions, so identical inputs
  give identical results
- Results are kept in a bounded least-recently-used cache
"""

import hashlib
import json
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union

from golive_kernel.dependencies.resolver import CapabilityGraph, DependencyResolver
from golive_kernel.models.capability import Capability, CapabilityAction, RiskLevel
from golive_kernel.models.errors import Reason
from golive_kernel.models.graph import BlastRadius
from golive_kernel.models.simulation import (
    CapabilityImpact,
    ConflictSeverity,
    SimulationAction,
    SimulationResult,
    StateComparison,
    StateDelta,
)
from golive_kernel.registry.store import CapabilityRegistry
from golive_kernel.simulator.conflicts import ConflictDetector, has_blocking_conflicts

logger = logging.getLogger(__name__)

ActionInput = Union[SimulationAction, dict]


def _fingerprint(capabilities: List[Capability], actions: List[SimulationAction]) -> str:
    canonical = {
        "capabilities": [
            {
                "id": c.id,
                "risk_level": c.risk_level.value,
                "depends_on": sorted(c.depends_on),
                "conflicts_with": sorted(c.conflicts_with),
                "enabled": c.enabled,
            }
            for c in capabilities
        ],
        "actions": [
            {"capability_id": a.capability_id, "action": a.action.value} for a in actions
        ],
    }
    digest = hashlib.sha256(json.dumps(canonical, sort_keys=True).encode()).hexdigest()
    return f"sim_{digest[:16]}"


class RolloutSimulator:

    def __init__(
        self,
        registry: CapabilityRegistry,
        resolver: Optional[DependencyResolver] = None,
        detector: Optional[ConflictDetector] = None,
        cache_size: int = 256,
    ):
        self.registry = registry
        self.resolver = resolver or DependencyResolver(registry)
        self.detector = detector or ConflictDetector(registry)
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, SimulationResult]" = OrderedDict()

    # --- Public entry points ---

    def simulate(self, action: ActionInput) -> SimulationResult:
        return self.simulate_batch([action])

    def simulate_enable(self, capability_id: str) -> SimulationResult:
        return self.simulate(SimulationAction(capability_id=capability_id, action=CapabilityAction.ENABLE))

    def simulate_disable(self, capability_id: str) -> SimulationResult:
        return self.simulate(SimulationAction(capability_id=capability_id, action=CapabilityAction.DISABLE))

    def simulate_batch(self, actions: Iterable[ActionInput]) -> SimulationResult:
        """Simulate several simultaneous actions as one combined change."""
        capabilities = self.registry.get_all()
        resolved, current, projected = self._project(capabilities, actions)

        sim_id = _fingerprint(capabilities, resolved)
        cached = self._lookup(sim_id)
        if cached is not None:
            return cached

        caps = {c.id: c for c in capabilities}
        turned_on = sorted(cid for cid in projected if projected[cid] and not current[cid])
        turned_off = sorted(cid for cid in projected if current[cid] and not projected[cid])

        enable_order = [
            cid for cid in self.resolver.get_batch_enable_order(turned_on) if cid in turned_on
        ] if turned_on else []
        disable_order = [
            cid for cid in self.resolver.get_batch_disable_order(turned_off) if cid in turned_off
        ] if turned_off else []

        conflicts = self.detector.detect_conflicts(resolved, projected, current)
        validation = self.resolver.validate_dependencies()

        reasons = [
            Reason(code=c.type.value, message=c.message, capability_ids=c.affected_capabilities)
            for c in conflicts if c.severity == ConflictSeverity.ERROR
        ]
        for missing in validation.missing_dependencies:
            reasons.append(Reason(
                code="missing_dependency",
                message=f"{missing.capability_id} depends on unregistered {missing.missing_id}",
                capability_ids=[missing.capability_id, missing.missing_id],
            ))
        for cycle in validation.circular_dependencies:
            reasons.append(Reason(
                code="circular_dependency",
                message="Dependency cycle: " + " -> ".join(cycle),
                capability_ids=cycle[:-1],
            ))

        if (turned_on and not enable_order) or (turned_off and not disable_order):
            reasons.append(Reason(
                code="no_valid_order",
                message="No valid ordering exists for the requested changes",
                capability_ids=turned_on + turned_off,
            ))

        feasible = not has_blocking_conflicts(conflicts) and validation.valid and not any(
            r.code == "no_valid_order" for r in reasons
        )

        known_targets = [a.capability_id for a in resolved if a.capability_id in caps]
        blast = self._combined_blast_radius(known_targets)
        changed = sorted(set(turned_on) | set(turned_off))
        risk = RiskLevel.highest([blast.risk_level] + [caps[cid].risk_level for cid in changed])

        impacts = [
            CapabilityImpact(
                capability_id=cid,
                name=caps[cid].name,
                current_enabled=current[cid],
                projected_enabled=projected[cid],
                direct=cid in known_targets,
                risk_level=caps[cid].risk_level,
            )
            for cid in sorted(set(changed) | set(known_targets))
        ]

        result = SimulationResult(
            id=sim_id,
            actions=resolved,
            feasible=feasible,
            risk_level=risk,
            enable_order=enable_order,
            disable_order=disable_order,
            conflicts=conflicts,
            blast_radius=blast,
            capability_impacts=impacts,
            recommendations=self._recommendations(
                feasible, risk, enable_order, disable_order, known_targets
            ),
            rollback_steps=(
                [f"disable {cid}" for cid in reversed(enable_order)]
                + [f"enable {cid}" for cid in reversed(disable_order)]
            ),
            reasons=reasons,
            simulated_at=datetime.utcnow(),
        )
        self._store(result)
        logger.debug("Simulation %s feasible=%s risk=%s", sim_id, feasible, risk.value)
        return result.model_copy(deep=True)

    def compare_states(self, actions: Iterable[ActionInput]) -> StateComparison:
        """Before/after enablement for a hypothetical change, without applying it."""
        actions = list(actions)
        capabilities = self.registry.get_all()
        resolved, current, projected = self._project(capabilities, actions)
        delta = [
            StateDelta(capability_id=cid, before=current[cid], after=projected[cid])
            for cid in sorted(current)
            if current[cid] != projected[cid]
        ]
        return StateComparison(
            before=current,
            after=projected,
            delta=delta,
            simulation_id=_fingerprint(capabilities, resolved),
        )

    # --- Cache ---

    def get_simulation(self, simulation_id: str) -> Optional[SimulationResult]:
        return self._lookup(simulation_id)

    def _lookup(self, simulation_id: str) -> Optional[SimulationResult]:
        cached = self._cache.get(simulation_id)
        if cached is None:
            return None
        self._cache.move_to_end(simulation_id)
        return cached.model_copy(deep=True)

    def _store(self, result: SimulationResult) -> None:
        self._cache[result.id] = result
        self._cache.move_to_end(result.id)
        while len(self._cache) > self.cache_size:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug("Evicted simulation %s from cache", evicted)

    def clear_cache(self) -> None:
        self._cache.clear()

    # --- Internals ---

    def _project(
        self,
        capabilities: List[Capability],
        actions: Iterable[ActionInput],
    ) -> Tuple[List[SimulationAction], Dict[str, bool], Dict[str, bool]]:
        """
        Resolve toggles against the current state and apply every action, in
        order, to a copy. Enabling pulls in dependencies; disabling pushes out
        dependents.
        """
        graph = CapabilityGraph(capabilities)
        current = {c.id: c.enabled for c in capabilities}
        projected = dict(current)
        resolved = []

        for raw in actions:
            action = raw if isinstance(raw, SimulationAction) else SimulationAction.model_validate(raw)
            cid = action.capability_id
            kind = action.action
            if kind == CapabilityAction.TOGGLE:
                kind = CapabilityAction.DISABLE if current.get(cid, False) else CapabilityAction.ENABLE
            resolved.append(SimulationAction(capability_id=cid, action=kind))

            node = graph.index.get(cid)
            if node is None:
                continue
            if kind == CapabilityAction.ENABLE:
                for i in graph.closure([node]):
                    projected[graph.ids[i]] = True
            else:
                for i in graph.closure([node], reverse=True):
                    projected[graph.ids[i]] = False

        return resolved, current, projected

    def _combined_blast_radius(self, capability_ids: List[str]) -> BlastRadius:
        if len(capability_ids) == 1:
            return self.resolver.calculate_blast_radius(capability_ids[0])

        targets = set(capability_ids)
        direct, transitive = set(), set()
        levels = [RiskLevel.LOW]
        for cid in sorted(targets):
            radius = self.resolver.calculate_blast_radius(cid)
            direct.update(radius.direct_impact)
            transitive.update(radius.transitive_impact)
            levels.append(radius.risk_level)
        direct -= targets
        transitive -= targets | direct
        return BlastRadius(
            capability_id=None,
            direct_impact=sorted(direct),
            transitive_impact=sorted(transitive),
            total_affected=len(direct | transitive),
            risk_level=RiskLevel.highest(levels),
        )

    def _recommendations(
        self,
        feasible: bool,
        risk: RiskLevel,
        enable_order: List[str],
        disable_order: List[str],
        targets: List[str],
    ) -> List[str]:
        recs = []
        if not feasible:
            recs.append("Resolve the blocking reasons before creating a plan")
        if not enable_order and not disable_order:
            recs.append("No state changes are required")
        pulled_in = [cid for cid in enable_order if cid not in targets]
        if pulled_in:
            recs.append(f"Enabling also turns on dependencies: {', '.join(pulled_in)}")
        pushed_out = [cid for cid in disable_order if cid not in targets]
        if pushed_out:
            recs.append(f"Disabling also turns off dependents: {', '.join(pushed_out)}")
        if risk in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            recs.append("High-risk change: require a second approver and run a dry run first")
        if risk == RiskLevel.CRITICAL:
            recs.append("Critical-risk change: schedule outside peak traffic and keep the rollback steps ready")
        return recs
