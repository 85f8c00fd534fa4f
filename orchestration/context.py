"""
Pipeline run context.

Immutable record of one run, passed between state handlers.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from domain.config import PipelineConfig, StageConfig
from domain.errors import InvalidTransition, PipelineError
from domain.stages import (
    ActionOutcome,
    StageEvent,
    StageResult,
    StageStatus,
    is_valid_stage_transition,
)
from .states import RunState


@dataclass(frozen=True)
class PipelineRun:
    """
    Immutable context for a pipeline run.

    Holds the per-stage results in declaration order plus the index of the
    stage being worked on. Each state handler returns a new PipelineRun
    with updated fields; nothing else mutates a run.
    """

    # Configuration
    config: PipelineConfig

    # Current state
    current_state: RunState = RunState.IDLE
    current_index: int = 0

    # One result per declared stage, in declaration order
    results: tuple[StageResult, ...] = field(default_factory=tuple)

    # Every stage status change, in the order it happened
    history: tuple[StageEvent, ...] = field(default_factory=tuple)

    # Outcome of the gated action waiting for a decision
    pending_outcome: Optional[ActionOutcome] = None

    # Execution metadata
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    # Error tracking
    error: Optional[PipelineError] = None
    error_message: Optional[str] = None

    @classmethod
    def create(cls, config: PipelineConfig) -> 'PipelineRun':
        """Create a fresh run with every stage pending."""
        results = tuple(
            StageResult(stage_name=stage.name, status=StageStatus.PENDING)
            for stage in config.stages
        )
        return cls(config=config, results=results)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def with_state(self, new_state: RunState) -> 'PipelineRun':
        """
        Return new run with updated state.

        Entering a terminal state stamps the end time.
        """
        end_time = datetime.now() if new_state.is_terminal() else self.end_time
        return replace(self, current_state=new_state, end_time=end_time)

    def with_index(self, index: int) -> 'PipelineRun':
        """Return new run pointing at another stage."""
        return replace(self, current_index=index)

    def with_stage_status(self, index: int, status: StageStatus, **changes) -> 'PipelineRun':
        """
        Return new run with one stage moved to a new status.

        Args:
            index: Stage position in declaration order
            status: New stage status
            **changes: Other StageResult fields to update

        Raises:
            InvalidTransition: If the stage cannot move to the new status
        """
        current = self.results[index]
        if not is_valid_stage_transition(current.status, status):
            raise InvalidTransition(
                f"Invalid stage transition for '{current.stage_name}': "
                f"{current.status} → {status}"
            )

        updated = replace(current, status=status, **changes)
        results = self.results[:index] + (updated,) + self.results[index + 1:]
        event = StageEvent(stage_name=current.stage_name, status=status)
        return replace(self, results=results, history=self.history + (event,))

    def with_pending_outcome(self, outcome: Optional[ActionOutcome]) -> 'PipelineRun':
        """Return new run holding (or clearing) the outcome awaiting approval."""
        return replace(self, pending_outcome=outcome)

    def with_error(self, error: PipelineError) -> 'PipelineRun':
        """
        Return new run aborted with error information.

        Args:
            error: Error that ended the run

        Returns:
            New PipelineRun in the ABORTED state
        """
        return replace(
            self,
            current_state=RunState.ABORTED,
            end_time=datetime.now(),
            error=error,
            error_message=str(error),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def current_stage(self) -> Optional[StageConfig]:
        """Stage at current_index, or None once past the last stage."""
        if 0 <= self.current_index < len(self.config.stages):
            return self.config.stages[self.current_index]
        return None

    @property
    def current_result(self) -> Optional[StageResult]:
        """Result record of the stage at current_index."""
        if 0 <= self.current_index < len(self.results):
            return self.results[self.current_index]
        return None

    @property
    def statuses(self) -> dict[str, StageStatus]:
        """Stage name to status, in declaration order."""
        return {result.stage_name: result.status for result in self.results}

    @property
    def status_sequence(self) -> list[tuple[str, StageStatus]]:
        """Stage status changes without timestamps, for comparing runs."""
        return [(event.stage_name, event.status) for event in self.history]

    @property
    def started_stages(self) -> list[str]:
        """Names of stages that entered RUNNING, in the order they did."""
        return [
            event.stage_name for event in self.history
            if event.status == StageStatus.RUNNING
        ]

    def result_for(self, stage_name: str) -> StageResult:
        """
        Look up a stage result by name.

        Raises:
            KeyError: If no stage has that name
        """
        for result in self.results:
            if result.stage_name == stage_name:
                return result
        raise KeyError(stage_name)

    @property
    def elapsed_time(self) -> float:
        """Get elapsed time in seconds."""
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self.current_state.is_terminal()

    @property
    def is_successful(self) -> bool:
        """Check if the run completed."""
        return self.current_state == RunState.COMPLETED

    @property
    def has_error(self) -> bool:
        """Check if the run was aborted."""
        return self.current_state == RunState.ABORTED

    def raise_for_status(self):
        """
        Raise the recorded error if the run was aborted.

        Raises:
            PipelineError: The error that aborted the run
        """
        if self.error is not None:
            raise self.error
        if self.has_error:
            raise PipelineError(self.error_message or "Pipeline run aborted")

    def get_summary(self) -> dict:
        """
        Get summary of the run.

        Returns:
            Dict with execution summary
        """
        counts: dict[str, int] = {}
        for result in self.results:
            counts[result.status.value] = counts.get(result.status.value, 0) + 1

        return {
            "run_name": self.config.run_name,
            "state": str(self.current_state),
            "elapsed_time_sec": self.elapsed_time,
            "start_time": self.start_time.isoformat(),
            "total_stages": len(self.results),
            "stage_counts": counts,
            "overridden_stages": [r.stage_name for r in self.results if r.overridden],
            "has_error": self.has_error,
            "error_message": self.error_message,
            "is_successful": self.is_successful,
        }
