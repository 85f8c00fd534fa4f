"""
PipelineExecutor - High-level pipeline orchestrator.

Wires together stage actions, the approval channel and the state machine,
and executes one run.

Each run can save:
  - logs/run_report.json   → summary, per-stage results, transition history
  - reports/<stage report> → plain-text tool output, written by the actions
"""

import json
import logging
import os
from typing import Mapping, Optional

from tqdm import tqdm

from domain.config import PipelineConfig
from orchestration import PipelineRun, RunState, StateMachine
from orchestration.handlers import (
    IdleHandler,
    StageExecutionHandler,
    ApprovalHandler,
)
from services.actions import ActionFactory, StageAction
from services.approval import ApprovalChannel, ConsoleApprover


class PipelineExecutor:
    """
    High-level pipeline executor.

    Responsible for:
    1. Creating the stage actions and approval channel
    2. Building the state machine with handlers
    3. Running the pipeline
    4. Returning (and optionally saving) the final run
    """

    def __init__(
        self,
        config: PipelineConfig,
        approval_channel: Optional[ApprovalChannel] = None,
        actions: Optional[Mapping[str, StageAction]] = None,
    ):
        """
        Initialize executor.

        Args:
            config: Validated pipeline configuration
            approval_channel: Channel for gate decisions (default: console prompt)
            actions: Stage name to action; built from config when omitted
        """
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

        self.approval_channel = approval_channel or ApprovalChannel(
            provider=ConsoleApprover(),
            timeout_sec=config.approval_timeout_sec,
        )
        self.actions = dict(actions) if actions is not None else self._build_actions()

        missing = [name for name in config.stage_names if name not in self.actions]
        if missing:
            raise ValueError(f"No action for stages: {missing}")

        self._progress_bar = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> PipelineRun:
        """Execute the pipeline and return the final run."""
        self.logger.info("Initializing pipeline execution")

        state_machine = self._build_state_machine()
        initial_run = PipelineRun.create(self.config)

        if self.config.show_progress:
            self._progress_bar = tqdm(
                total=len(self.config.stages), desc="Stages", unit="stage", dynamic_ncols=True
            )

        try:
            final_run = state_machine.run(initial_run)
        finally:
            if self._progress_bar is not None:
                self._progress_bar.close()
                self._progress_bar = None

        self._log_results(final_run)
        return final_run

    def describe_stages(self) -> list[str]:
        """One line per stage describing what it would run (for dry runs)."""
        lines = []
        for position, stage in enumerate(self.config.stages, start=1):
            line = f"{position}. {stage.name}: {self.actions[stage.name].describe()}"
            if stage.gate is not None:
                line += f"  [gate on {stage.gate.trigger}]"
            if stage.skip:
                line += "  [skip]"
            lines.append(line)
        return lines

    def save_run_report(self, run_dir: str, run: PipelineRun) -> str:
        """
        Save the run report JSON.

        Saved to: <run_dir>/logs/run_report.json

        Args:
            run_dir: Run directory path
            run:     Final pipeline run

        Returns:
            Path of the written report
        """
        report = {
            "summary": run.get_summary(),
            "stages": [result.to_dict() for result in run.results],
            "history": [
                {
                    "stage": event.stage_name,
                    "status": event.status.value,
                    "timestamp": event.timestamp.isoformat(),
                }
                for event in run.history
            ],
        }

        logs_dir = os.path.join(run_dir, "logs")
        os.makedirs(logs_dir, exist_ok=True)
        report_path = os.path.join(logs_dir, "run_report.json")

        with open(report_path, "w") as f:
            json.dump(report, f, indent=2, default=str)

        self.logger.info(f"Saved run report to: {report_path}")
        return report_path

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _build_actions(self) -> dict[str, StageAction]:
        factory = ActionFactory(self.config.build_args_dict)
        return factory.create_all(self.config)

    def _build_state_machine(self) -> StateMachine:
        handlers = {
            RunState.IDLE: IdleHandler(),
            RunState.RUNNING: StageExecutionHandler(self.actions),
            RunState.AWAITING_APPROVAL: ApprovalHandler(self.approval_channel),
        }
        return StateMachine(handlers, observers=[self._update_progress])

    def _update_progress(self, run: PipelineRun):
        if self._progress_bar is None:
            return
        done = sum(1 for result in run.results if result.status.is_terminal())
        self._progress_bar.update(done - self._progress_bar.n)

    def _log_results(self, run: PipelineRun):
        """Log per-stage outcome of the run."""
        for result in run.results:
            suffix = ""
            if result.overridden:
                suffix = f" (exit code {result.exit_code}, approved by operator)"
            elif result.exit_code not in (None, 0):
                suffix = f" (exit code {result.exit_code})"
            if result.report_path:
                suffix += f" report: {result.report_path}"
            self.logger.debug(f"{result.stage_name}: {result.status}{suffix}")
