"""Control plane configuration."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field


_TRUTHY = ("1", "true", "yes", "on")


def env_flag(value: Optional[str]) -> bool:
    """Interpret an environment flag value."""
    return value is not None and value.strip().lower() in _TRUTHY


class ControlPlaneConfig(BaseModel):
    """Configuration for the Go-Live Control Plane."""

    enabled: bool = False
    readiness_cache_ttl_seconds: float = Field(ge=0, default=30.0)
    probe_timeout_ms: int = Field(gt=0, default=5000)
    proceed_score_threshold: int = Field(ge=0, le=100, default=90)
    kill_switch: bool = False
    change_freeze_schedule: Optional[str] = None   # Cron expression; matching minutes freeze real runs
    catalog_path: Optional[str] = None             # JSON catalog; None = built-in catalog
    audit_db_path: str = ":memory:"
    checkpoint_db_path: str = ":memory:"
    plan_ttl_hours: Optional[float] = None         # Approved plans expire after this long
    simulation_cache_size: int = Field(gt=0, default=256)
    history_limit: int = Field(gt=0, default=500)  # Finished executions and terminal plans kept

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ControlPlaneConfig":
        """Build a config from ENABLE_GLCP and GLCP_* environment variables."""
        env = os.environ if environ is None else environ
        values = {"enabled": env_flag(env.get("ENABLE_GLCP"))}

        numeric = {
            "GLCP_READINESS_TTL_SECONDS": ("readiness_cache_ttl_seconds", float),
            "GLCP_PROBE_TIMEOUT_MS": ("probe_timeout_ms", int),
            "GLCP_PROCEED_SCORE_THRESHOLD": ("proceed_score_threshold", int),
            "GLCP_PLAN_TTL_HOURS": ("plan_ttl_hours", float),
            "GLCP_SIMULATION_CACHE_SIZE": ("simulation_cache_size", int),
            "GLCP_HISTORY_LIMIT": ("history_limit", int),
        }
        for var, (field, cast) in numeric.items():
            if env.get(var):
                values[field] = cast(env[var])

        if "GLCP_KILL_SWITCH" in env:
            values["kill_switch"] = env_flag(env["GLCP_KILL_SWITCH"])
        if env.get("GLCP_CHANGE_FREEZE"):
            values["change_freeze_schedule"] = env["GLCP_CHANGE_FREEZE"]
        if env.get("GLCP_CATALOG_PATH"):
            values["catalog_path"] = env["GLCP_CATALOG_PATH"]
        if env.get("GLCP_AUDIT_DB"):
            values["audit_db_path"] = env["GLCP_AUDIT_DB"]
        if env.get("GLCP_CHECKPOINT_DB"):
            values["checkpoint_db_path"] = env["GLCP_CHECKPOINT_DB"]

        return cls(**values)
