"""
Decision providers - Sources of operator decisions for approval gates.
"""

from abc import ABC, abstractmethod
import logging
import sys
from typing import Callable, Iterable, Mapping, Optional, TextIO, Union

from domain.stages import OperatorDecision
from .channel import ApprovalRequest


class DecisionProvider(ABC):
    """Base class for decision providers."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def decide(self, request: ApprovalRequest) -> OperatorDecision:
        """
        Produce a decision for an approval request.

        Runs on a helper thread; may block for as long as it needs.

        Raises:
            Exception: Any error resolves the gate as abort
        """
        pass


class ConsoleApprover(DecisionProvider):
    """
    Interactive approver reading from a terminal.

    Shows the gate message with both choices; an empty answer picks the
    gate's default choice. Abort is always offered.
    """

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        output: Optional[TextIO] = None,
        max_attempts: int = 3,
    ):
        """
        Initialize console approver.

        Args:
            input_func: Function reading one answer line
            output: Stream for the prompt text (default: stdout)
            max_attempts: Unrecognized answers allowed before giving up
        """
        super().__init__()
        if max_attempts <= 0:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")

        self.input_func = input_func
        self.output = output
        self.max_attempts = max_attempts

    def decide(self, request: ApprovalRequest) -> OperatorDecision:
        out = self.output or sys.stdout

        print("", file=out)
        print(f"=== Approval required: {request.stage_name} ===", file=out)
        print(request.message, file=out)
        if request.exit_code is not None:
            print(f"Exit code: {request.exit_code}", file=out)
        if request.report_path:
            print(f"Report: {request.report_path}", file=out)
        out.flush()

        choices = (
            f"[{request.ok_label}=proceed / Abort=abort] "
            f"(default: {request.default_choice}): "
        )

        for _ in range(self.max_attempts):
            print(choices, end="", file=out)
            out.flush()
            answer = self.input_func("").strip()
            if not answer:
                return request.default_choice
            if answer.lower() == request.ok_label.lower():
                return OperatorDecision.PROCEED
            try:
                return OperatorDecision.parse(answer)
            except ValueError:
                print(f"Unrecognized answer {answer!r}, type proceed or abort", file=out)

        raise ValueError(
            f"No valid decision for stage '{request.stage_name}' "
            f"after {self.max_attempts} attempts"
        )


class ScriptedApprover(DecisionProvider):
    """
    Approver answering from pre-seeded decisions.

    Decisions are either keyed by stage name or consumed in order. Every
    request is recorded in ``requests``.
    """

    def __init__(
        self,
        decisions: Union[Mapping[str, Union[OperatorDecision, str]],
                         Iterable[Union[OperatorDecision, str]]],
    ):
        super().__init__()
        if isinstance(decisions, Mapping):
            self._by_stage = {
                name: OperatorDecision.parse(d) for name, d in decisions.items()
            }
            self._queue = None
        else:
            self._by_stage = None
            self._queue = [OperatorDecision.parse(d) for d in decisions]

        self.requests: list[ApprovalRequest] = []

    def decide(self, request: ApprovalRequest) -> OperatorDecision:
        self.requests.append(request)

        if self._by_stage is not None:
            if request.stage_name not in self._by_stage:
                raise LookupError(f"No scripted decision for stage '{request.stage_name}'")
            return self._by_stage[request.stage_name]

        if not self._queue:
            raise LookupError("Scripted decisions exhausted")
        return self._queue.pop(0)


class AutoApprover(DecisionProvider):
    """Approver giving the same decision to every gate."""

    def __init__(self, decision: Union[OperatorDecision, str] = OperatorDecision.PROCEED):
        super().__init__()
        self.decision = OperatorDecision.parse(decision)

    def decide(self, request: ApprovalRequest) -> OperatorDecision:
        self.logger.info(f"Auto-answering gate '{request.stage_name}': {self.decision}")
        return self.decision
