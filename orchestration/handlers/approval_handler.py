"""
ApprovalHandler - Handles the AWAITING_APPROVAL state.

Posts an approval request for the gated stage and suspends the run until
the operator's decision arrives.
"""

from datetime import datetime

from domain.errors import OperatorAbort
from domain.stages import OperatorDecision, StageStatus
from orchestration.context import PipelineRun
from orchestration.states import RunState
from services.approval.channel import ApprovalChannel, ApprovalRequest
from .base import StateHandler


class ApprovalHandler(StateHandler):
    """
    Handler for AWAITING_APPROVAL state.

    ``proceed`` marks the stage succeeded and moves to the next stage;
    ``abort`` marks it failed and aborts the run.
    """

    def __init__(self, channel: ApprovalChannel):
        """
        Initialize handler.

        Args:
            channel: Channel that delivers operator decisions
        """
        super().__init__()
        self.channel = channel

    def handle(self, run: PipelineRun) -> tuple[PipelineRun, RunState]:
        self._log_state_entry(run)

        index = run.current_index
        stage = run.current_stage
        outcome = run.pending_outcome

        request = ApprovalRequest(
            stage_name=stage.name,
            message=stage.gate.prompt,
            ok_label=stage.gate.ok_label,
            default_choice=stage.gate.default_choice,
            exit_code=outcome.exit_code if outcome else None,
            report_path=outcome.report_path if outcome else None,
        )

        decision = self.channel.request(request)
        self.logger.info(f"Operator decision for stage '{stage.name}': {decision}")

        run = run.with_pending_outcome(None)

        if decision == OperatorDecision.PROCEED:
            run = run.with_stage_status(
                index,
                StageStatus.SUCCEEDED,
                decision=decision,
                completed_at=datetime.now(),
            )
            run, next_state = self._advance(run)
        else:
            run = run.with_stage_status(
                index,
                StageStatus.FAILED,
                decision=decision,
                completed_at=datetime.now(),
            )
            run = run.with_error(OperatorAbort(stage.name))
            next_state = RunState.ABORTED

        self._log_state_exit(run, next_state)
        return run, next_state
