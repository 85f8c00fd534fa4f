"""
ApprovalChannel - Suspension point for interactive gates.

The run posts an ApprovalRequest and blocks on a Future until a decision
arrives, either from a DecisionProvider running on a helper thread or from
any other thread calling ``resolve``.
"""

import logging
import threading
from concurrent.futures import Future, InvalidStateError
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from domain.stages import OperatorDecision

if TYPE_CHECKING:
    from .providers import DecisionProvider


@dataclass(frozen=True)
class ApprovalRequest:
    """A gate's question to the operator."""

    stage_name: str
    message: str
    ok_label: str = "Proceed"
    default_choice: OperatorDecision = OperatorDecision.PROCEED

    # Outcome of the action that triggered the gate
    exit_code: Optional[int] = None
    report_path: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "stage": self.stage_name,
            "message": self.message,
            "ok_label": self.ok_label,
            "default_choice": self.default_choice.value,
            "exit_code": self.exit_code,
            "report_path": self.report_path,
        }


class ApprovalChannel:
    """
    Delivers operator decisions to waiting gates.

    Abort is always reachable: a provider error, an unparseable answer or
    an expired wait all resolve the gate as ``abort``. With no timeout
    configured a gate waits indefinitely.
    """

    def __init__(
        self,
        provider: Optional['DecisionProvider'] = None,
        timeout_sec: Optional[float] = None,
    ):
        """
        Initialize approval channel.

        Args:
            provider: Source of decisions; None means decisions only arrive
                through ``resolve``
            timeout_sec: Give up waiting after this many seconds (None waits forever)
        """
        if timeout_sec is not None and timeout_sec <= 0:
            raise ValueError(f"timeout_sec must be positive, got {timeout_sec}")

        self.provider = provider
        self.timeout_sec = timeout_sec
        self.logger = logging.getLogger(self.__class__.__name__)

        self._lock = threading.Lock()
        self._pending: dict[str, tuple[ApprovalRequest, Future]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def request(self, request: ApprovalRequest) -> OperatorDecision:
        """
        Post a request and block until it is decided.

        Args:
            request: Approval request for a gated stage

        Returns:
            The operator's decision
        """
        future = self.submit(request)
        return self.wait(request, future)

    def submit(self, request: ApprovalRequest) -> Future:
        """
        Post a request without waiting.

        Returns:
            Future resolved with an OperatorDecision
        """
        future: Future = Future()
        with self._lock:
            self._pending[request.stage_name] = (request, future)

        self.logger.info(
            f"Approval requested for stage '{request.stage_name}': {request.message}"
        )

        if self.provider is not None:
            thread = threading.Thread(
                target=self._ask_provider,
                args=(request, future),
                name=f"approval-{request.stage_name}",
                daemon=True,
            )
            thread.start()

        return future

    def wait(self, request: ApprovalRequest, future: Future) -> OperatorDecision:
        """
        Block until the request's future is resolved.

        Returns:
            The decision, or ABORT if the wait failed or timed out
        """
        try:
            return future.result(timeout=self.timeout_sec)
        except FutureTimeoutError:
            self.logger.warning(
                f"No decision for stage '{request.stage_name}' within "
                f"{self.timeout_sec}s, aborting"
            )
            future.cancel()
            return OperatorDecision.ABORT
        except Exception as e:
            self.logger.error(
                f"Could not obtain decision for stage '{request.stage_name}': {e}, aborting"
            )
            return OperatorDecision.ABORT
        finally:
            with self._lock:
                self._pending.pop(request.stage_name, None)

    def resolve(self, stage_name: str, decision) -> bool:
        """
        Deliver a decision for a pending request.

        Args:
            stage_name: Stage whose gate is waiting
            decision: OperatorDecision or text accepted by OperatorDecision.parse

        Returns:
            True if a waiting gate received the decision
        """
        decision = OperatorDecision.parse(decision)

        with self._lock:
            entry = self._pending.get(stage_name)

        if entry is None:
            self.logger.warning(f"No pending approval for stage '{stage_name}'")
            return False

        _, future = entry
        return self._set_result(future, decision)

    def pending_requests(self) -> list[ApprovalRequest]:
        """Requests currently waiting for a decision."""
        with self._lock:
            return [request for request, _ in self._pending.values()]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ask_provider(self, request: ApprovalRequest, future: Future):
        """Run the provider on the helper thread and resolve the future."""
        try:
            decision = OperatorDecision.parse(self.provider.decide(request))
        except Exception as e:
            try:
                future.set_exception(e)
            except InvalidStateError:
                self.logger.debug(f"Provider failed after the gate was resolved: {e}")
            return

        self._set_result(future, decision)

    def _set_result(self, future: Future, decision: OperatorDecision) -> bool:
        try:
            future.set_result(decision)
        except InvalidStateError:
            self.logger.debug("Decision arrived after the gate was resolved, ignoring")
            return False
        return True
