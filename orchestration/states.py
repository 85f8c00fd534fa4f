"""
Run states.

Explicit state enumeration for the pipeline state machine.
"""

from enum import Enum, auto


class RunState(Enum):
    """
    All possible states of a pipeline run.

    A run executes one stage at a time; the only suspension point is
    AWAITING_APPROVAL, entered when a gated stage needs an operator decision.
    """

    # Initial state
    IDLE = auto()

    # Executing the stage at current_index
    RUNNING = auto()

    # Blocked on an operator decision for the stage at current_index
    AWAITING_APPROVAL = auto()

    # Terminal states
    COMPLETED = auto()
    ABORTED = auto()

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in (RunState.COMPLETED, RunState.ABORTED)

    def __str__(self) -> str:
        """String representation of state."""
        return self.name


# Valid state transitions
VALID_TRANSITIONS = {
    RunState.IDLE: {
        RunState.RUNNING,
        RunState.ABORTED,
    },
    RunState.RUNNING: {
        RunState.RUNNING,
        RunState.AWAITING_APPROVAL,
        RunState.COMPLETED,
        RunState.ABORTED,
    },
    RunState.AWAITING_APPROVAL: {
        RunState.RUNNING,
        RunState.COMPLETED,
        RunState.ABORTED,
    },
    RunState.COMPLETED: set(),  # Terminal
    RunState.ABORTED: set(),    # Terminal
}


def is_valid_transition(from_state: RunState, to_state: RunState) -> bool:
    """
    Check if a state transition is valid.

    Args:
        from_state: Current state
        to_state: Target state

    Returns:
        True if transition is valid
    """
    return to_state in VALID_TRANSITIONS.get(from_state, set())
