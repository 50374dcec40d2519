"""
Error taxonomy for the control plane.

Every error carries a list of machine-readable Reasons so that callers (and
the HTTP surface) can explain a refusal without parsing messages. Probe
failures are not exceptions at all: they become `fail` probe results.
"""

from typing import List, Optional

from golive_kernel.models.errors import Reason


class ControlPlaneError(Exception):
    """Base class. Carries the reasons that justify the refusal."""

    code = "control_plane_error"

    def __init__(self, message: str, reasons: Optional[List[Reason]] = None):
        super().__init__(message)
        self.message = message
        self.reasons = reasons or [Reason(code=self.code, message=message)]

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "reasons": [r.model_dump(mode="json") for r in self.reasons],
        }


class ValidationError(ControlPlaneError):
    """Missing dependency, cycle, unapproved or expired plan, freeze window."""

    code = "validation_error"


class ConflictError(ControlPlaneError):
    """Blocking conflicts, or a concurrent execution of the same plan."""

    code = "conflict_error"


class NotFoundError(ControlPlaneError):
    code = "not_found"


class ControlPlaneDisabled(ControlPlaneError):
    """The control plane flag (ENABLE_GLCP) is off."""

    code = "control_plane_disabled"

    def __init__(self, message: str = "Go-Live Control Plane is not enabled"):
        super().__init__(
            message,
            [Reason(code=self.code, message="Set ENABLE_GLCP=true to enable the control plane")],
        )


class ExecutionFailure(ControlPlaneError):
    """A plan step failed. Converted into a failed ExecutionResult by the executor."""

    code = "execution_failure"

    def __init__(self, message: str, capability_id: Optional[str] = None):
        super().__init__(
            message,
            [Reason(
                code=self.code,
                message=message,
                capability_ids=[capability_id] if capability_id else [],
            )],
        )
        self.capability_id = capability_id


class CheckpointWriteError(ExecutionFailure):
    code = "checkpoint_write_failed"
