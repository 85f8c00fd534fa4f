"""
StageExecutionHandler - Handles the RUNNING state.

Invokes the external action of the stage at current_index and applies the
failure policy: a failed stage without a gate aborts the run, a gated stage
hands over to the approval state.
"""

from datetime import datetime
from typing import Mapping

from domain.errors import StageExecutionFailure
from domain.stages import ActionOutcome, StageStatus
from orchestration.context import PipelineRun
from orchestration.states import RunState
from services.actions.base import StageAction
from .base import StateHandler


class StageExecutionHandler(StateHandler):
    """
    Handler for RUNNING state.

    Runs exactly one stage per call. The run never moves on before the
    stage reaches a terminal status or is handed to the approval gate.
    """

    def __init__(self, actions: Mapping[str, StageAction]):
        """
        Initialize handler.

        Args:
            actions: Stage name to the action that executes it
        """
        super().__init__()
        self.actions = actions

    def handle(self, run: PipelineRun) -> tuple[PipelineRun, RunState]:
        """
        Execute the current stage and determine next state.

        Args:
            run: Current pipeline run

        Returns:
            Tuple of (updated_run, next_state)
        """
        self._log_state_entry(run)

        index = run.current_index
        stage = run.current_stage

        if stage.skip:
            self.logger.info(f"Stage '{stage.name}' is marked skip, not running it")
            run = run.with_stage_status(index, StageStatus.SKIPPED)
            run, next_state = self._advance(run)
            self._log_state_exit(run, next_state)
            return run, next_state

        started_at = datetime.now()
        run = run.with_stage_status(index, StageStatus.RUNNING, started_at=started_at)

        outcome = self._invoke(stage.name)
        fields = {
            "exit_code": outcome.exit_code,
            "report_path": outcome.report_path,
            "error_message": outcome.error_message,
        }

        gate = stage.gate
        needs_approval = gate is not None and (
            not outcome.succeeded or gate.trigger == "always"
        )

        if needs_approval:
            self.logger.warning(
                f"Stage '{stage.name}' finished with exit code {outcome.exit_code}; "
                f"waiting for operator approval"
            )
            run = run.with_stage_status(index, StageStatus.AWAITING_APPROVAL, **fields)
            run = run.with_pending_outcome(outcome)
            next_state = RunState.AWAITING_APPROVAL

        elif outcome.succeeded:
            self.logger.info(f"✓ Stage '{stage.name}' succeeded")
            run = run.with_stage_status(
                index, StageStatus.SUCCEEDED, completed_at=datetime.now(), **fields
            )
            run, next_state = self._advance(run)

        else:
            self.logger.error(
                f"✗ Stage '{stage.name}' failed with exit code {outcome.exit_code}"
            )
            run = run.with_stage_status(
                index, StageStatus.FAILED, completed_at=datetime.now(), **fields
            )
            run = run.with_error(
                StageExecutionFailure(stage.name, outcome.exit_code, outcome.error_message)
            )
            next_state = RunState.ABORTED

        self._log_state_exit(run, next_state)
        return run, next_state

    def _invoke(self, stage_name: str) -> ActionOutcome:
        """
        Run the stage's action.

        An action that raises is reported as a failed invocation so the
        stage's failure policy still applies.
        """
        action = self.actions.get(stage_name)
        if action is None:
            return ActionOutcome(
                exit_code=1,
                error_message=f"No action registered for stage '{stage_name}'",
            )

        try:
            return action.run()
        except Exception as e:
            self.logger.error(f"Action for stage '{stage_name}' raised: {e}", exc_info=True)
            return ActionOutcome(exit_code=1, error_message=str(e))
