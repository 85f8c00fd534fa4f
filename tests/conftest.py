"""
Shared fixtures for pipeline tests.

Stage actions are replaced by in-memory fakes so runs are deterministic.
"""

import pytest

from domain.config import GateConfig, PipelineConfig, StageConfig
from domain.stages import ActionOutcome
from pipeline.executor import PipelineExecutor
from services.actions.base import StageAction
from services.approval import ApprovalChannel, ScriptedApprover


class RecordingAction(StageAction):
    """Fake action returning a fixed exit code and logging each call."""

    def __init__(self, stage_name: str, exit_code: int, calls: list):
        super().__init__(stage_name)
        self.exit_code = exit_code
        self.calls = calls

    def run(self) -> ActionOutcome:
        self.calls.append(self.stage_name)
        return ActionOutcome(exit_code=self.exit_code, output=f"{self.stage_name} output")


@pytest.fixture
def build_pipeline():
    """
    Factory building an executor from stage outcomes.

    Usage:
        executor, calls, approver = build_pipeline(
            {"checkout": 0, "scan": 1}, gated={"scan"}, decisions={"scan": "proceed"}
        )
    """
    def _build(outcomes, gated=(), decisions=None, trigger="failure", skipped=()):
        calls = []
        stages = tuple(
            StageConfig(
                name=name,
                command=("true",),
                gate=GateConfig(trigger=trigger) if name in gated else None,
                skip=name in skipped,
            )
            for name in outcomes
        )
        config = PipelineConfig(stages=stages, run_name="test_run")
        actions = {
            name: RecordingAction(name, exit_code, calls)
            for name, exit_code in outcomes.items()
        }
        approver = ScriptedApprover(decisions if decisions is not None else {})
        channel = ApprovalChannel(provider=approver)
        executor = PipelineExecutor(config, approval_channel=channel, actions=actions)
        return executor, calls, approver

    return _build
