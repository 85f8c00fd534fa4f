"""
Pipeline error types.

Errors are recorded on the run rather than raised out of the executor;
``PipelineRun.raise_for_status`` re-raises them on demand.
"""

from typing import Any, Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class StageExecutionFailure(PipelineError):
    """An external command returned failure on a stage without a gate."""

    def __init__(self, stage_name: str, exit_code: Optional[int], reason: Optional[str] = None):
        message = f"Stage '{stage_name}' failed with exit code {exit_code}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"stage": stage_name, "exit_code": exit_code})
        self.stage_name = stage_name
        self.exit_code = exit_code


class OperatorAbort(PipelineError):
    """The operator declined an approval gate."""

    def __init__(self, stage_name: str, reason: Optional[str] = None):
        message = f"Operator aborted the run at stage '{stage_name}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"stage": stage_name})
        self.stage_name = stage_name


class InvalidTransition(PipelineError):
    """A handler requested a transition the state table does not allow."""
