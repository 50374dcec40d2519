"""
Capability Registry — stores capability definitions and live enablement state.

Updated by: Discovery at startup + Plan Executor steps
Queried by: Dependency Resolver, Conflict Detector, Simulator, Readiness probes
"""

import logging
import os
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from golive_kernel.models.capability import (
    Capability,
    CapabilityDomain,
    DomainGroup,
    RegistrySnapshot,
    RiskLevel,
)
from golive_kernel.models.config import env_flag
from golive_kernel.registry.catalog import BUILTIN_CATALOG, load_catalog

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """
    In-memory capability store. One instance is constructed at process start
    and handed to every component; tests construct their own. Reads and
    writes share one re-entrant lock, since sync API handlers run on a
    thread pool.
    """

    def __init__(
        self,
        catalog: Optional[List[dict]] = None,
        catalog_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._catalog = catalog
        self._catalog_path = catalog_path
        self._environ = environ
        self._capabilities: Dict[str, Capability] = {}
        self._lock = threading.RLock()

    # --- Discovery ---

    def discover(self) -> List[Capability]:
        """
        Read the configured catalog and derive each capability's initial
        enablement from its environment flag. Does not touch the store.
        """
        if self._catalog is not None:
            entries = self._catalog
        elif self._catalog_path:
            entries = load_catalog(self._catalog_path)
        else:
            entries = BUILTIN_CATALOG

        env = os.environ if self._environ is None else self._environ
        discovered = []
        for entry in entries:
            data = dict(entry)
            flag = data.get("flag")
            if "enabled" not in data:
                data["enabled"] = env_flag(env.get(flag)) if flag else False
            discovered.append(Capability.model_validate(data))
        return sorted(discovered, key=lambda c: c.id)

    def register(self, capabilities: Iterable[Capability]) -> None:
        """
        Upsert capabilities by id. An existing id gets the new definition but
        keeps its live enabled flag.
        """
        with self._lock:
            for cap in capabilities:
                existing = self._capabilities.get(cap.id)
                stored = cap.model_copy(deep=True)
                if existing is not None:
                    stored.enabled = existing.enabled
                self._capabilities[cap.id] = stored
        logger.debug("Registry now holds %d capabilities", len(self._capabilities))

    def discover_and_register(self) -> List[Capability]:
        caps = self.discover()
        self.register(caps)
        return caps

    # --- Queries ---

    def get(self, capability_id: str) -> Optional[Capability]:
        with self._lock:
            cap = self._capabilities.get(capability_id)
            return cap.model_copy(deep=True) if cap else None

    def exists(self, capability_id: str) -> bool:
        with self._lock:
            return capability_id in self._capabilities

    def get_all(self) -> List[Capability]:
        """All capabilities, sorted by id."""
        with self._lock:
            return [
                self._capabilities[cid].model_copy(deep=True)
                for cid in sorted(self._capabilities)
            ]

    def get_by_flag(self, flag: str) -> Optional[Capability]:
        for cap in self.get_all():
            if cap.flag == flag:
                return cap
        return None

    def filter(
        self,
        domain: Optional[CapabilityDomain] = None,
        enabled: Optional[bool] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> List[Capability]:
        caps = self.get_all()
        if domain is not None:
            caps = [c for c in caps if c.domain == domain]
        if enabled is not None:
            caps = [c for c in caps if c.enabled == enabled]
        if risk_level is not None:
            caps = [c for c in caps if c.risk_level == risk_level]
        return caps

    def group_by_domain(self) -> List[DomainGroup]:
        """Capabilities grouped by domain, domains in enum order."""
        groups: Dict[CapabilityDomain, List[Capability]] = {}
        for cap in self.get_all():
            groups.setdefault(cap.domain, []).append(cap)
        return [
            DomainGroup(domain=domain, capabilities=groups[domain])
            for domain in CapabilityDomain
            if domain in groups
        ]

    def enablement_map(self) -> Dict[str, bool]:
        with self._lock:
            return {cid: self._capabilities[cid].enabled for cid in sorted(self._capabilities)}

    def snapshot(self) -> RegistrySnapshot:
        """Deep copy of every capability, for audit and diffing."""
        return RegistrySnapshot(timestamp=datetime.utcnow(), capabilities=self.get_all())

    # --- Mutation (Plan Executor only) ---

    def set_enabled(self, capability_id: str, enabled: bool) -> bool:
        """Set one capability's flag. Returns the previous value."""
        with self._lock:
            cap = self._capabilities.get(capability_id)
            if cap is None:
                raise KeyError(f"Unknown capability: {capability_id}")
            previous = cap.enabled
            cap.enabled = enabled
            return previous

    def restore(self, state: Mapping[str, bool]) -> List[dict]:
        """
        Apply an enablement map captured earlier. Returns the changes made;
        an empty list means the registry was already in that state.
        """
        changes = []
        with self._lock:
            for cid in sorted(state):
                cap = self._capabilities.get(cid)
                if cap is None or cap.enabled == state[cid]:
                    continue
                changes.append({"capability_id": cid, "from": cap.enabled, "to": state[cid]})
                cap.enabled = state[cid]
        return changes

    # --- Lifecycle ---

    def clear(self) -> None:
        """Drop every capability. Test/reset only."""
        with self._lock:
            self._capabilities.clear()

    def reset(self) -> List[Capability]:
        """Clear and re-run discovery."""
        self.clear()
        return self.discover_and_register()

    def __len__(self) -> int:
        with self._lock:
            return len(self._capabilities)
