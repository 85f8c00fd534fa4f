"""
Base state handler.

Abstract base class for all state handlers.
"""

from abc import ABC, abstractmethod
import logging

from orchestration.context import PipelineRun
from orchestration.states import RunState


class StateHandler(ABC):
    """
    Base class for state handlers.

    Each state handler implements the logic for transitioning
    from one state to the next.
    """

    def __init__(self):
        """Initialize state handler."""
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def handle(self, run: PipelineRun) -> tuple[PipelineRun, RunState]:
        """
        Handle the current state and determine next state.

        Args:
            run: Current pipeline run

        Returns:
            Tuple of (updated_run, next_state)

        Raises:
            Exception: If state handling fails
        """
        pass

    def _advance(self, run: PipelineRun) -> tuple[PipelineRun, RunState]:
        """
        Move past the current stage.

        Stages run strictly in declaration order, so the next stage is
        always current_index + 1; past the last stage the run is complete.
        """
        next_index = run.current_index + 1
        run = run.with_index(next_index)

        if next_index >= len(run.config.stages):
            return run, RunState.COMPLETED
        return run, RunState.RUNNING

    def _log_state_entry(self, run: PipelineRun):
        """Log entry to state."""
        stage = run.current_stage
        stage_info = f" (stage '{stage.name}')" if stage else ""
        self.logger.info(f"Entering state: {run.current_state}{stage_info}")

    def _log_state_exit(self, run: PipelineRun, next_state: RunState):
        """Log exit from state."""
        self.logger.info(f"Exiting state: {run.current_state} → {next_state}")
