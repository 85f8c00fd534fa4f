"""
Orchestration layer for pipeline execution.

State machine-based orchestration with explicit state transitions.
"""

from .states import RunState
from .context import PipelineRun
from .state_machine import StateMachine

__all__ = [
    "RunState",
    "PipelineRun",
    "StateMachine",
]
