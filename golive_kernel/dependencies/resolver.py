"""
Dependency Resolver — validates and orders state transitions over the
capability graph.

Behavioral Contract:
- The graph is derived from the registry on every call, never cached
- depends_on must be acyclic; cycles are reported, never tolerated
- Ordering functions fail closed: an unknown id, a missing dependency or a
  cycle anywhere in the relevant subgraph yields an empty order
- Ties between equally valid orders are broken by ascending capability id
"""

import heapq
from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from golive_kernel.models.capability import Capability, RiskLevel
from golive_kernel.models.graph import (
    BlastRadius,
    DependencyValidation,
    InvalidStateIssue,
    InvalidStateReport,
    MissingDependency,
)
from golive_kernel.registry.store import CapabilityRegistry


class CapabilityGraph:
    """
    Index arena over capabilities. Node i is the i-th id in ascending order,
    so comparing indices is the same as comparing ids.
    """

    def __init__(self, capabilities: Iterable[Capability]):
        caps = sorted(capabilities, key=lambda c: c.id)
        self.ids: List[str] = [c.id for c in caps]
        self.index: Dict[str, int] = {cid: i for i, cid in enumerate(self.ids)}
        self.risk: List[RiskLevel] = [c.risk_level for c in caps]
        self.enabled: List[bool] = [c.enabled for c in caps]
        self.deps: List[List[int]] = [[] for _ in caps]
        self.dependents: List[List[int]] = [[] for _ in caps]
        self.missing: List[MissingDependency] = []

        for i, cap in enumerate(caps):
            for dep in sorted(cap.depends_on):
                j = self.index.get(dep)
                if j is None:
                    self.missing.append(MissingDependency(capability_id=cap.id, missing_id=dep))
                    continue
                self.deps[i].append(j)
                self.dependents[j].append(i)
        for lst in self.dependents:
            lst.sort()

    def __len__(self) -> int:
        return len(self.ids)

    def find_cycles(self) -> List[List[str]]:
        """
        Iterative depth-first search with an explicit recursion stack. Each
        cycle is returned as its full path, closed by repeating the first id.
        """
        n = len(self.ids)
        visited = [False] * n
        cycles: List[List[str]] = []
        seen: Set[tuple] = set()

        for root in range(n):
            if visited[root]:
                continue
            visited[root] = True
            stack = [(root, 0)]
            path = [root]
            on_stack = {root}

            while stack:
                node, cursor = stack[-1]
                neighbors = self.deps[node]
                if cursor < len(neighbors):
                    stack[-1] = (node, cursor + 1)
                    nxt = neighbors[cursor]
                    if nxt in on_stack:
                        cycle = path[path.index(nxt):]
                        pivot = cycle.index(min(cycle))
                        key = tuple(cycle[pivot:] + cycle[:pivot])
                        if key not in seen:
                            seen.add(key)
                            cycles.append([self.ids[i] for i in key] + [self.ids[key[0]]])
                    elif not visited[nxt]:
                        visited[nxt] = True
                        stack.append((nxt, 0))
                        path.append(nxt)
                        on_stack.add(nxt)
                else:
                    stack.pop()
                    path.pop()
                    on_stack.discard(node)

        return cycles

    def closure(self, starts: Iterable[int], reverse: bool = False) -> Set[int]:
        """Breadth-first closure over dependency (or dependent) edges, starts included."""
        edges = self.dependents if reverse else self.deps
        seen = set(starts)
        queue = deque(sorted(seen))
        while queue:
            node = queue.popleft()
            for nxt in edges[node]:
                if nxt not in seen:
                    seen.add(nxt)
                    queue.append(nxt)
        return seen

    def topological_order(self, nodes: Set[int]) -> Optional[List[int]]:
        """
        Kahn's algorithm over the induced subgraph, dependencies first, using a
        min-heap for the ascending-id tie-break. None if the subgraph has a cycle.
        """
        indegree = {i: sum(1 for d in self.deps[i] if d in nodes) for i in nodes}
        ready = [i for i, deg in indegree.items() if deg == 0]
        heapq.heapify(ready)
        order = []
        while ready:
            node = heapq.heappop(ready)
            order.append(node)
            for dependent in self.dependents[node]:
                if dependent in indegree:
                    indegree[dependent] -= 1
                    if indegree[dependent] == 0:
                        heapq.heappush(ready, dependent)
        if len(order) != len(nodes):
            return None
        return order

    def has_missing(self, nodes: Set[int]) -> bool:
        names = {self.ids[i] for i in nodes}
        return any(m.capability_id in names for m in self.missing)


def _count_risk(total_affected: int) -> RiskLevel:
    if total_affected == 0:
        return RiskLevel.LOW
    if total_affected <= 2:
        return RiskLevel.MEDIUM
    if total_affected <= 5:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


class DependencyResolver:
    """Graph algorithms over the registry's capabilities."""

    def __init__(self, registry: CapabilityRegistry):
        self.registry = registry

    def graph(self) -> CapabilityGraph:
        return CapabilityGraph(self.registry.get_all())

    # --- Validation ---

    def validate_dependencies(self) -> DependencyValidation:
        graph = self.graph()
        cycles = graph.find_cycles()
        return DependencyValidation(
            valid=not graph.missing and not cycles,
            missing_dependencies=graph.missing,
            circular_dependencies=cycles,
        )

    def detect_invalid_states(self) -> InvalidStateReport:
        """An enabled capability with a disabled or missing hard dependency."""
        caps = {c.id: c for c in self.registry.get_all()}
        issues = []
        for cid in sorted(caps):
            cap = caps[cid]
            if not cap.enabled:
                continue
            for dep in sorted(cap.depends_on):
                dep_cap = caps.get(dep)
                if dep_cap is None:
                    issues.append(InvalidStateIssue(
                        capability_id=cid,
                        disabled_dependency=dep,
                        message=f"{cid} is enabled but its dependency {dep} is not registered",
                    ))
                elif not dep_cap.enabled:
                    issues.append(InvalidStateIssue(
                        capability_id=cid,
                        disabled_dependency=dep,
                        message=f"{cid} is enabled but its dependency {dep} is disabled",
                    ))
        return InvalidStateReport(has_invalid_states=bool(issues), issues=issues)

    def get_safe_to_enable(self) -> List[str]:
        """Disabled capabilities whose every dependency is registered and enabled."""
        caps = {c.id: c for c in self.registry.get_all()}
        safe = []
        for cid in sorted(caps):
            cap = caps[cid]
            if cap.enabled:
                continue
            if all(dep in caps and caps[dep].enabled for dep in cap.depends_on):
                safe.append(cid)
        return safe

    # --- Impact ---

    def calculate_blast_radius(self, capability_id: str) -> BlastRadius:
        graph = self.graph()
        node = graph.index.get(capability_id)
        if node is None:
            return BlastRadius(capability_id=capability_id)

        direct = [i for i in graph.dependents[node] if i != node]
        affected = graph.closure([node], reverse=True)
        affected.discard(node)
        transitive = sorted(affected - set(direct))

        risk = RiskLevel.highest(
            [_count_risk(len(affected))] + [graph.risk[i] for i in affected]
        )
        return BlastRadius(
            capability_id=capability_id,
            direct_impact=[graph.ids[i] for i in direct],
            transitive_impact=[graph.ids[i] for i in transitive],
            total_affected=len(affected),
            risk_level=risk,
        )

    # --- Ordering ---

    def get_enable_order(self, capability_id: str) -> List[str]:
        """The capability's dependency closure, dependencies before dependents."""
        return self.get_batch_enable_order([capability_id])

    def get_disable_order(self, capability_id: str) -> List[str]:
        """Reverse of the enable order over the capability and its dependents."""
        return self.get_batch_disable_order([capability_id])

    def get_batch_enable_order(self, capability_ids: Iterable[str]) -> List[str]:
        graph = self.graph()
        starts = self._indices(graph, capability_ids)
        if starts is None:
            return []
        nodes = graph.closure(starts)
        if graph.has_missing(nodes):
            return []
        order = graph.topological_order(nodes)
        return [graph.ids[i] for i in order] if order is not None else []

    def get_batch_disable_order(self, capability_ids: Iterable[str]) -> List[str]:
        graph = self.graph()
        starts = self._indices(graph, capability_ids)
        if starts is None:
            return []
        nodes = graph.closure(starts, reverse=True)
        if graph.has_missing(nodes):
            return []
        order = graph.topological_order(nodes)
        return [graph.ids[i] for i in reversed(order)] if order is not None else []

    def _indices(self, graph: CapabilityGraph, capability_ids: Iterable[str]) -> Optional[List[int]]:
        indices = []
        for cid in capability_ids:
            if cid not in graph.index:
                return None
            indices.append(graph.index[cid])
        return indices
