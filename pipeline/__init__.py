"""
Pipeline execution.

High-level executor that wires actions, approvals and the state machine.
"""

from .executor import PipelineExecutor

__all__ = ["PipelineExecutor"]
