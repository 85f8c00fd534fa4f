"""
Stage-related domain models.

Immutable data structures describing stage status and outcome.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class StageStatus(Enum):
    """Status of a single stage within a run."""

    PENDING = "pending"
    RUNNING = "running"
    AWAITING_APPROVAL = "awaiting_approval"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    def is_terminal(self) -> bool:
        """Check if the stage can no longer change status."""
        return self in (StageStatus.SUCCEEDED, StageStatus.FAILED, StageStatus.SKIPPED)

    def __str__(self) -> str:
        return self.value


# Valid stage status transitions
VALID_STAGE_TRANSITIONS = {
    StageStatus.PENDING: {StageStatus.RUNNING, StageStatus.SKIPPED},
    StageStatus.RUNNING: {
        StageStatus.SUCCEEDED,
        StageStatus.FAILED,
        StageStatus.AWAITING_APPROVAL,
    },
    StageStatus.AWAITING_APPROVAL: {StageStatus.SUCCEEDED, StageStatus.FAILED},
    StageStatus.SUCCEEDED: set(),
    StageStatus.FAILED: set(),
    StageStatus.SKIPPED: set(),
}


def is_valid_stage_transition(from_status: StageStatus, to_status: StageStatus) -> bool:
    """Check if a stage status transition is valid."""
    return to_status in VALID_STAGE_TRANSITIONS.get(from_status, set())


class OperatorDecision(Enum):
    """Operator answer to an approval gate."""

    PROCEED = "proceed"
    ABORT = "abort"

    @classmethod
    def parse(cls, value) -> 'OperatorDecision':
        """
        Parse a decision from free text.

        Accepts the enum values plus a few common aliases (``y``, ``yes``,
        ``n``, ``no``, ``continue``).

        Raises:
            ValueError: If the text is not a recognized decision
        """
        if isinstance(value, cls):
            return value

        text = str(value).strip().lower()
        if text in ("proceed", "p", "y", "yes", "continue", "ok"):
            return cls.PROCEED
        if text in ("abort", "a", "n", "no", "stop"):
            return cls.ABORT
        raise ValueError(f"Unrecognized operator decision: {value!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ActionOutcome:
    """
    Result of invoking a stage's external action.

    The report text is opaque: it is stored for the operator, never parsed.
    """

    exit_code: int
    output: str = ""
    report_path: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        """Check if the tool signalled success."""
        return self.exit_code == 0


@dataclass(frozen=True)
class StageResult:
    """Outcome of one stage in a run."""

    stage_name: str
    status: StageStatus
    exit_code: Optional[int] = None
    report_path: Optional[str] = None
    decision: Optional[OperatorDecision] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        """Execution time in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0

    @property
    def overridden(self) -> bool:
        """Check if the stage failed but the operator chose to continue."""
        return (
            self.status == StageStatus.SUCCEEDED
            and self.decision == OperatorDecision.PROCEED
            and self.exit_code not in (None, 0)
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "stage": self.stage_name,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "report_path": self.report_path,
            "decision": self.decision.value if self.decision else None,
            "overridden": self.overridden,
            "error": self.error_message,
            "duration": f"{self.duration_seconds:.1f}s",
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass(frozen=True)
class StageEvent:
    """One entry of a run's transition history."""

    stage_name: str
    status: StageStatus
    timestamp: datetime = field(default_factory=datetime.now)
