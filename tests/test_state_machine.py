"""
Tests for the orchestration layer.

States, the immutable run context and the state machine loop.
"""

import pytest

from domain.config import PipelineConfig, StageConfig
from domain.errors import InvalidTransition, PipelineError
from domain.stages import StageStatus
from orchestration import PipelineRun, RunState, StateMachine
from orchestration.handlers import IdleHandler, StateHandler
from orchestration.states import is_valid_transition


def make_config(*names):
    return PipelineConfig(
        stages=tuple(StageConfig(name=name, command=("true",)) for name in names)
    )


class TestRunStates:
    """Tests for the run state table."""

    def test_terminal_states(self):
        """Test that only COMPLETED and ABORTED are terminal."""
        assert RunState.COMPLETED.is_terminal()
        assert RunState.ABORTED.is_terminal()
        assert not RunState.IDLE.is_terminal()
        assert not RunState.RUNNING.is_terminal()
        assert not RunState.AWAITING_APPROVAL.is_terminal()

    def test_valid_transitions(self):
        """Test the allowed run transitions."""
        assert is_valid_transition(RunState.IDLE, RunState.RUNNING)
        assert is_valid_transition(RunState.RUNNING, RunState.RUNNING)
        assert is_valid_transition(RunState.RUNNING, RunState.AWAITING_APPROVAL)
        assert is_valid_transition(RunState.AWAITING_APPROVAL, RunState.RUNNING)
        assert is_valid_transition(RunState.AWAITING_APPROVAL, RunState.ABORTED)

    def test_invalid_transitions(self):
        """Test that terminal states have no way out."""
        assert not is_valid_transition(RunState.COMPLETED, RunState.RUNNING)
        assert not is_valid_transition(RunState.ABORTED, RunState.RUNNING)
        assert not is_valid_transition(RunState.IDLE, RunState.AWAITING_APPROVAL)
        assert not is_valid_transition(RunState.IDLE, RunState.COMPLETED)


class TestPipelineRun:
    """Tests for the immutable run context."""

    def test_create_marks_all_stages_pending(self):
        """Test that a fresh run has every stage pending."""
        run = PipelineRun.create(make_config("checkout", "build"))

        assert run.current_state == RunState.IDLE
        assert run.current_index == 0
        assert run.statuses == {
            "checkout": StageStatus.PENDING,
            "build": StageStatus.PENDING,
        }
        assert run.history == ()

    def test_with_stage_status_is_immutable(self):
        """Test that updating a stage returns a new run."""
        run = PipelineRun.create(make_config("checkout"))

        updated = run.with_stage_status(0, StageStatus.RUNNING)

        assert run.statuses["checkout"] == StageStatus.PENDING
        assert updated.statuses["checkout"] == StageStatus.RUNNING
        assert updated.status_sequence == [("checkout", StageStatus.RUNNING)]

        with pytest.raises(Exception):  # FrozenInstanceError
            run.current_index = 3

    def test_invalid_stage_transition_raises(self):
        """Test that a pending stage cannot jump to succeeded."""
        run = PipelineRun.create(make_config("checkout"))

        with pytest.raises(InvalidTransition, match="pending → succeeded"):
            run.with_stage_status(0, StageStatus.SUCCEEDED)

    def test_with_error_aborts(self):
        """Test that recording an error moves the run to ABORTED."""
        run = PipelineRun.create(make_config("checkout"))

        aborted = run.with_error(PipelineError("boom"))

        assert aborted.current_state == RunState.ABORTED
        assert aborted.has_error
        assert aborted.error_message == "boom"
        assert aborted.end_time is not None

    def test_current_stage_past_end_is_none(self):
        """Test that current_stage is None after the last stage."""
        run = PipelineRun.create(make_config("checkout")).with_index(1)

        assert run.current_stage is None
        assert run.current_result is None

    def test_result_for_unknown_stage(self):
        """Test lookup of an unknown stage name."""
        run = PipelineRun.create(make_config("checkout"))

        with pytest.raises(KeyError):
            run.result_for("deploy")

    def test_summary(self):
        """Test the run summary counts."""
        run = PipelineRun.create(make_config("checkout", "build"))
        run = run.with_stage_status(0, StageStatus.RUNNING)
        run = run.with_stage_status(0, StageStatus.SUCCEEDED)

        summary = run.get_summary()

        assert summary["state"] == "IDLE"
        assert summary["total_stages"] == 2
        assert summary["stage_counts"] == {"succeeded": 1, "pending": 1}


class _StuckHandler(StateHandler):
    """Handler that never leaves RUNNING."""

    def handle(self, run):
        return run, RunState.RUNNING


class _BadTransitionHandler(StateHandler):
    """Handler requesting a transition the table forbids."""

    def handle(self, run):
        return run, RunState.IDLE


class _ExplodingHandler(StateHandler):
    """Handler that raises."""

    def handle(self, run):
        raise RuntimeError("tool crashed")


class _StartThenCrashHandler(StateHandler):
    """Handler that marks the stage running, then raises."""

    def handle(self, run):
        run.with_stage_status(run.current_index, StageStatus.RUNNING)
        raise RuntimeError("tool crashed mid-stage")


class TestStateMachine:
    """Tests for the state machine loop."""

    def _machine(self, running_handler):
        return StateMachine({
            RunState.IDLE: IdleHandler(),
            RunState.RUNNING: running_handler,
            RunState.AWAITING_APPROVAL: running_handler,
        })

    def test_missing_handler_fails(self):
        """Test that every non-terminal state needs a handler."""
        with pytest.raises(ValueError, match="Missing handlers"):
            StateMachine({RunState.IDLE: IdleHandler()})

    def test_invalid_transition_aborts(self):
        """Test that a forbidden transition aborts the run."""
        run = self._machine(_BadTransitionHandler()).run(
            PipelineRun.create(make_config("checkout"))
        )

        assert run.current_state == RunState.ABORTED
        assert isinstance(run.error, InvalidTransition)

    def test_handler_exception_aborts(self):
        """Test that an exception inside a handler aborts the run."""
        run = self._machine(_ExplodingHandler()).run(
            PipelineRun.create(make_config("checkout"))
        )

        assert run.current_state == RunState.ABORTED
        assert "tool crashed" in run.error_message

    def test_handler_exception_drops_partial_updates(self):
        """Test that a raising handler's stage updates are not kept."""
        initial = PipelineRun.create(make_config("checkout", "build"))

        run = self._machine(_StartThenCrashHandler()).run(initial)

        assert run.current_state == RunState.ABORTED
        assert run.current_index == 0
        assert run.statuses == initial.statuses
        assert all(result.status == StageStatus.PENDING for result in run.results)
        assert "tool crashed mid-stage" in run.error_message

    def test_iteration_limit_aborts(self):
        """Test that a handler looping forever is stopped."""
        run = self._machine(_StuckHandler()).run(
            PipelineRun.create(make_config("checkout"))
        )

        assert run.current_state == RunState.ABORTED
        assert run.error_message.startswith("Pipeline exceeded maximum iterations")

    def test_observers_see_every_step(self):
        """Test that observers are notified after each step."""
        seen = []
        machine = StateMachine(
            {
                RunState.IDLE: IdleHandler(),
                RunState.RUNNING: _ExplodingHandler(),
                RunState.AWAITING_APPROVAL: _ExplodingHandler(),
            },
            observers=[lambda run: seen.append(run.current_state)],
        )

        machine.run(PipelineRun.create(make_config("checkout")))

        assert seen == [RunState.RUNNING, RunState.ABORTED]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
