"""
IdleHandler - Starts a run.
"""

from orchestration.context import PipelineRun
from orchestration.states import RunState
from .base import StateHandler


class IdleHandler(StateHandler):
    """Handler for IDLE state: points the run at the first stage."""

    def handle(self, run: PipelineRun) -> tuple[PipelineRun, RunState]:
        self._log_state_entry(run)

        self.logger.info(
            f"Declared stages ({len(run.config.stages)}): "
            f"{' → '.join(run.config.stage_names)}"
        )

        run = run.with_index(0)
        next_state = RunState.RUNNING

        self._log_state_exit(run, next_state)
        return run, next_state
