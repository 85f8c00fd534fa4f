"""
State machine for pipeline execution.

Orchestrates state transitions and handler execution.
"""

import logging
from typing import Callable, Dict, Iterable, Optional

from domain.errors import InvalidTransition, PipelineError
from .context import PipelineRun
from .states import RunState, is_valid_transition
from .handlers.base import StateHandler


RunObserver = Callable[[PipelineRun], None]


class StateMachine:
    """
    State machine for orchestrating a pipeline run.

    Manages state transitions and delegates work to state handlers.
    Observers are called with the run after every step.
    """

    REQUIRED_STATES = (RunState.IDLE, RunState.RUNNING, RunState.AWAITING_APPROVAL)

    def __init__(
        self,
        handlers: Dict[RunState, StateHandler],
        observers: Optional[Iterable[RunObserver]] = None,
    ):
        """
        Initialize state machine.

        Args:
            handlers: Dict mapping states to their handlers
            observers: Optional callbacks notified after each step
        """
        self.handlers = handlers
        self.observers = list(observers or [])
        self.logger = logging.getLogger(self.__class__.__name__)

        self._validate_handlers()

    def _validate_handlers(self):
        """Validate that every non-terminal state has a handler."""
        missing = set(self.REQUIRED_STATES) - set(self.handlers.keys())
        if missing:
            raise ValueError(
                f"Missing handlers for states: {sorted(str(s) for s in missing)}"
            )

    def run(self, initial_run: PipelineRun) -> PipelineRun:
        """
        Run the state machine until a terminal state is reached.

        Args:
            initial_run: Freshly created pipeline run

        Returns:
            Final pipeline run
        """
        run = initial_run
        iteration = 0
        # Each stage needs at most a RUNNING and an AWAITING_APPROVAL step
        max_iterations = 2 * len(run.config.stages) + 2

        self.logger.info("=" * 60)
        self.logger.info(f"Starting pipeline run: {run.config.run_name}")
        self.logger.info("=" * 60)

        while not run.is_terminal and iteration < max_iterations:
            iteration += 1

            # A handler that raises loses its partial updates: the run is
            # aborted from the value the handler was given.
            try:
                run = self._execute_state(run)
            except PipelineError as e:
                self.logger.error(f"Error in state {run.current_state}: {e}")
                run = run.with_error(e)
            except Exception as e:
                self.logger.error(f"Error in state {run.current_state}: {e}", exc_info=True)
                run = run.with_error(PipelineError(
                    f"Error in {run.current_state}: {e}",
                    {"iteration": iteration, "state": str(run.current_state)},
                ))

            self._notify(run)

        if not run.is_terminal:
            self.logger.error("State machine exceeded maximum iterations")
            run = run.with_error(PipelineError(
                "Pipeline exceeded maximum iterations",
                {"iterations": iteration},
            ))
            self._notify(run)

        self._log_final_state(run)
        return run

    def _execute_state(self, run: PipelineRun) -> PipelineRun:
        """
        Execute the current state's handler.

        Args:
            run: Current pipeline run

        Returns:
            Updated pipeline run
        """
        current_state = run.current_state
        self.logger.debug(f"Current state: {current_state}")

        handler = self.handlers[current_state]
        updated_run, next_state = handler.handle(run)

        if not is_valid_transition(current_state, next_state):
            raise InvalidTransition(
                f"Invalid state transition: {current_state} → {next_state}"
            )

        self.logger.debug(f"Transition: {current_state} → {next_state}")
        return updated_run.with_state(next_state)

    def _notify(self, run: PipelineRun):
        for observer in self.observers:
            observer(run)

    def _log_final_state(self, run: PipelineRun):
        """Log final run state."""
        self.logger.info("=" * 60)

        if run.is_successful:
            self.logger.info("✓ Pipeline completed successfully")
        else:
            self.logger.error(f"✗ Pipeline aborted: {run.error_message}")

        self.logger.info(f"Final state: {run.current_state}")
        self.logger.info(f"Elapsed time: {run.elapsed_time:.1f}s")

        for result in run.results:
            self.logger.info(f"  {result.stage_name}: {result.status}")

        self.logger.info("=" * 60)
