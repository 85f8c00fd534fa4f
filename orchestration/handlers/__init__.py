"""
State handlers for pipeline execution.

Each handler implements logic for a specific run state.
"""

from .base import StateHandler
from .idle_handler import IdleHandler
from .stage_execution_handler import StageExecutionHandler
from .approval_handler import ApprovalHandler

__all__ = [
    "StateHandler",
    "IdleHandler",
    "StageExecutionHandler",
    "ApprovalHandler",
]
