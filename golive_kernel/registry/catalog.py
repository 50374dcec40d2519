"""
Capability catalog — the configuration source the registry discovers from.

The built-in catalog describes the content platform's switchable subsystems
and the environment flag that turns each one on. A deployment can replace it
with a JSON file holding a list of the same entries.
"""

import json
from pathlib import Path
from typing import List


BUILTIN_CATALOG: List[dict] = [
    # --- governance ---
    {
        "id": "audit_logs",
        "name": "Audit Logs",
        "domain": "governance",
        "risk_level": "low",
        "flag": "ENABLE_AUDIT_LOGS",
        "description": "Persist an audit trail of editorial and admin actions.",
    },
    {
        "id": "rbac",
        "name": "Role-Based Access Control",
        "domain": "governance",
        "risk_level": "high",
        "flag": "ENABLE_RBAC",
        "depends_on": ["audit_logs"],
    },
    {
        "id": "policy_enforcement",
        "name": "Policy Enforcement",
        "domain": "governance",
        "risk_level": "high",
        "flag": "ENABLE_POLICY_ENFORCEMENT",
        "depends_on": ["rbac"],
    },
    {
        "id": "unified_policy_engine",
        "name": "Unified Policy Engine",
        "domain": "governance",
        "risk_level": "critical",
        "flag": "ENABLE_UNIFIED_POLICY_ENGINE",
        "depends_on": ["policy_enforcement"],
        "conflicts_with": ["enterprise_governance"],
    },
    {
        "id": "enterprise_governance",
        "name": "Enterprise Governance",
        "domain": "governance",
        "risk_level": "critical",
        "flag": "ENABLE_ENTERPRISE_GOVERNANCE",
        "depends_on": ["policy_enforcement"],
        "conflicts_with": ["unified_policy_engine"],
    },
    {
        "id": "approval_workflows",
        "name": "Approval Workflows",
        "domain": "governance",
        "risk_level": "medium",
        "flag": "ENABLE_APPROVAL_WORKFLOWS",
        "depends_on": ["rbac"],
    },
    # --- content ---
    {
        "id": "content_review",
        "name": "Content Review",
        "domain": "content",
        "risk_level": "low",
        "flag": "ENABLE_CONTENT_REVIEW",
        "depends_on": ["approval_workflows"],
    },
    {
        "id": "content_health",
        "name": "Content Health Monitor",
        "domain": "content",
        "risk_level": "low",
        "flag": "ENABLE_CONTENT_HEALTH",
    },
    {
        "id": "gatekeeper_pipeline",
        "name": "Gatekeeper Pipeline",
        "domain": "content",
        "risk_level": "high",
        "flag": "ENABLE_GATEKEEPER_PIPELINE",
        "depends_on": ["content_review"],
    },
    {
        "id": "rss_scheduler",
        "name": "RSS Scheduler",
        "domain": "content",
        "risk_level": "medium",
        "flag": "ENABLE_RSS_SCHEDULER",
    },
    # --- localization ---
    {
        "id": "translation_queue",
        "name": "Translation Queue",
        "domain": "localization",
        "risk_level": "medium",
        "flag": "ENABLE_TRANSLATION_QUEUE",
    },
    {
        "id": "translation_worker",
        "name": "Translation Worker",
        "domain": "localization",
        "risk_level": "medium",
        "flag": "ENABLE_TRANSLATION_WORKER",
        "depends_on": ["translation_queue"],
    },
    {
        "id": "localization_governance",
        "name": "Localization Governance",
        "domain": "localization",
        "risk_level": "medium",
        "flag": "ENABLE_LOCALIZATION_GOVERNANCE",
        "depends_on": ["translation_worker", "policy_enforcement"],
    },
    # --- seo ---
    {
        "id": "seo_autopilot",
        "name": "SEO Autopilot",
        "domain": "seo",
        "risk_level": "high",
        "flag": "ENABLE_SEO_AUTOPILOT",
        "depends_on": ["content_health"],
    },
    # --- growth ---
    {
        "id": "growth_os",
        "name": "Growth OS",
        "domain": "growth",
        "risk_level": "medium",
        "flag": "ENABLE_GROWTH_OS",
    },
    {
        "id": "growth_os_signals",
        "name": "Growth OS Signals",
        "domain": "growth",
        "risk_level": "low",
        "flag": "ENABLE_GROWTH_OS_SIGNALS",
        "depends_on": ["growth_os"],
    },
    {
        "id": "growth_os_actions",
        "name": "Growth OS Actions",
        "domain": "growth",
        "risk_level": "high",
        "flag": "ENABLE_GROWTH_OS_ACTIONS",
        "depends_on": ["growth_os_signals", "growth_os_safety"],
    },
    {
        "id": "growth_os_safety",
        "name": "Growth OS Safety",
        "domain": "growth",
        "risk_level": "medium",
        "flag": "ENABLE_GROWTH_OS_SAFETY",
        "depends_on": ["growth_os"],
    },
    # --- autonomy ---
    {
        "id": "autonomy_policy",
        "name": "Autonomy Policy",
        "domain": "autonomy",
        "risk_level": "high",
        "flag": "ENABLE_AUTONOMY_POLICY",
        "depends_on": ["policy_enforcement"],
    },
    {
        "id": "autonomy_simulator",
        "name": "Autonomy Simulator",
        "domain": "autonomy",
        "risk_level": "low",
        "flag": "ENABLE_AUTONOMY_SIMULATOR",
        "depends_on": ["autonomy_policy"],
    },
    {
        "id": "autonomy_drift_detector",
        "name": "Autonomy Drift Detector",
        "domain": "autonomy",
        "risk_level": "medium",
        "flag": "ENABLE_AUTONOMY_DRIFT_DETECTOR",
        "depends_on": ["autonomy_policy"],
    },
    # --- operations ---
    {
        "id": "change_apply",
        "name": "Change Apply",
        "domain": "operations",
        "risk_level": "critical",
        "flag": "ENABLE_CHANGE_APPLY",
        "depends_on": ["audit_logs"],
    },
    {
        "id": "change_rollback",
        "name": "Change Rollback",
        "domain": "operations",
        "risk_level": "high",
        "flag": "ENABLE_CHANGE_ROLLBACK",
        "depends_on": ["change_apply"],
    },
    {
        "id": "data_integrity_watchdog",
        "name": "Data Integrity Watchdog",
        "domain": "operations",
        "risk_level": "low",
        "flag": "ENABLE_DATA_INTEGRITY_WATCHDOG",
    },
    # --- platform ---
    {
        "id": "platform_status",
        "name": "Platform Status",
        "domain": "platform",
        "risk_level": "low",
        "flag": "ENABLE_PLATFORM_STATUS",
    },
    {
        "id": "encryption",
        "name": "Encryption at Rest",
        "domain": "platform",
        "risk_level": "critical",
        "flag": "ENABLE_ENCRYPTION",
    },
]


def load_catalog(path: str) -> List[dict]:
    """Load catalog entries from a JSON file containing a list of objects."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("capabilities", [])
    if not isinstance(data, list):
        raise ValueError(f"Catalog {path} must contain a list of capabilities")
    return data
