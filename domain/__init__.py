"""
Domain models for the deployment pipeline.

Pure data structures with validation, no business logic.
"""

from .stages import (
    StageStatus,
    OperatorDecision,
    ActionOutcome,
    StageResult,
    StageEvent,
    is_valid_stage_transition,
)
from .config import (
    PipelineConfig,
    StageConfig,
    GateConfig,
    QualityGateConfig,
)
from .errors import (
    PipelineError,
    StageExecutionFailure,
    OperatorAbort,
    InvalidTransition,
)

__all__ = [
    "StageStatus",
    "OperatorDecision",
    "ActionOutcome",
    "StageResult",
    "StageEvent",
    "is_valid_stage_transition",
    "PipelineConfig",
    "StageConfig",
    "GateConfig",
    "QualityGateConfig",
    "PipelineError",
    "StageExecutionFailure",
    "OperatorAbort",
    "InvalidTransition",
]
