"""
Tests for the approval channel and decision providers.
"""

import io
import threading
import time

import pytest

from domain.stages import OperatorDecision
from services.approval import (
    ApprovalChannel,
    ApprovalRequest,
    AutoApprover,
    ConsoleApprover,
    DecisionProvider,
    ScriptedApprover,
)


def make_request(stage_name="trivy-fs-scan", **kwargs):
    return ApprovalRequest(
        stage_name=stage_name,
        message="Trivy found vulnerabilities. Proceed anyway?",
        **kwargs,
    )


class _BlockingProvider(DecisionProvider):
    """Provider that waits until released."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def decide(self, request):
        self.release.wait(timeout=5)
        return OperatorDecision.PROCEED


class _FailingProvider(DecisionProvider):
    """Provider whose input stream is closed."""

    def decide(self, request):
        raise EOFError("stdin closed")


class TestApprovalChannel:
    """Tests for ApprovalChannel."""

    def test_provider_decision_is_returned(self):
        """Test that the provider's answer reaches the waiting gate."""
        channel = ApprovalChannel(provider=AutoApprover("proceed"))

        assert channel.request(make_request()) == OperatorDecision.PROCEED

    def test_provider_error_aborts(self):
        """Test that a provider error resolves the gate as abort."""
        channel = ApprovalChannel(provider=_FailingProvider())

        assert channel.request(make_request()) == OperatorDecision.ABORT

    def test_timeout_aborts(self):
        """Test that an expired wait resolves the gate as abort."""
        provider = _BlockingProvider()
        channel = ApprovalChannel(provider=provider, timeout_sec=0.1)

        try:
            assert channel.request(make_request()) == OperatorDecision.ABORT
        finally:
            provider.release.set()

        assert channel.pending_requests() == []

    def test_external_resolve(self):
        """Test that another thread can deliver the decision."""
        channel = ApprovalChannel()
        request = make_request()
        future = channel.submit(request)

        assert channel.pending_requests() == [request]

        resolver = threading.Thread(target=channel.resolve, args=(request.stage_name, "abort"))
        resolver.start()
        decision = channel.wait(request, future)
        resolver.join()

        assert decision == OperatorDecision.ABORT
        assert channel.pending_requests() == []

    def test_resolve_unknown_stage(self):
        """Test resolving a stage that is not waiting."""
        channel = ApprovalChannel()

        assert channel.resolve("docker-push", "proceed") is False

    def test_late_decision_is_ignored(self):
        """Test that a decision after the gate resolved does not raise."""
        channel = ApprovalChannel()
        request = make_request()
        future = channel.submit(request)

        assert channel.resolve(request.stage_name, "proceed") is True
        assert channel.resolve(request.stage_name, "abort") is False
        assert channel.wait(request, future) == OperatorDecision.PROCEED

    def test_invalid_timeout_fails(self):
        """Test that a non-positive timeout is rejected."""
        with pytest.raises(ValueError, match="timeout_sec must be positive"):
            ApprovalChannel(timeout_sec=0)

    def test_no_timeout_waits(self):
        """Test that without a timeout the gate waits for a slow decision."""
        provider = _BlockingProvider()
        channel = ApprovalChannel(provider=provider)

        threading.Timer(0.2, provider.release.set).start()
        started = time.monotonic()

        assert channel.request(make_request()) == OperatorDecision.PROCEED
        assert time.monotonic() - started >= 0.1


class TestConsoleApprover:
    """Tests for ConsoleApprover."""

    def _approver(self, answers):
        answers = list(answers)
        self.output = io.StringIO()
        return ConsoleApprover(input_func=lambda prompt: answers.pop(0), output=self.output)

    def test_empty_answer_uses_default(self):
        """Test that pressing enter picks the default choice."""
        approver = self._approver([""])

        assert approver.decide(make_request()) == OperatorDecision.PROCEED

    def test_empty_answer_with_abort_default(self):
        """Test a gate whose default choice is abort."""
        approver = self._approver([""])
        request = make_request(default_choice=OperatorDecision.ABORT)

        assert approver.decide(request) == OperatorDecision.ABORT

    def test_ok_label_proceeds(self):
        """Test that typing the ok label proceeds."""
        approver = self._approver(["Deploy anyway"])
        request = make_request(ok_label="Deploy anyway")

        assert approver.decide(request) == OperatorDecision.PROCEED

    def test_abort_is_offered(self):
        """Test that abort is always a choice."""
        approver = self._approver(["abort"])

        assert approver.decide(make_request(exit_code=1, report_path="reports/trivyfs.txt")) \
            == OperatorDecision.ABORT
        shown = self.output.getvalue()
        assert "Abort=abort" in shown
        assert "Exit code: 1" in shown
        assert "reports/trivyfs.txt" in shown

    def test_choices_shown_on_every_attempt(self):
        """Test that the choices line is written to the output before each answer."""
        approver = self._approver(["maybe", "proceed"])

        assert approver.decide(make_request(ok_label="Deploy anyway")) == OperatorDecision.PROCEED
        assert self.output.getvalue().count("[Deploy anyway=proceed / Abort=abort]") == 2

    def test_reprompts_then_gives_up(self):
        """Test that unrecognized answers are retried, then raise."""
        approver = self._approver(["maybe", "later", "hmm"])

        with pytest.raises(ValueError, match="No valid decision"):
            approver.decide(make_request())

    def test_reprompt_then_valid(self):
        """Test that a valid answer after a bad one is accepted."""
        approver = self._approver(["maybe", "n"])

        assert approver.decide(make_request()) == OperatorDecision.ABORT


class TestScriptedApprover:
    """Tests for ScriptedApprover."""

    def test_decisions_by_stage(self):
        """Test decisions keyed by stage name."""
        approver = ScriptedApprover({"owasp": "abort", "trivy": OperatorDecision.PROCEED})

        assert approver.decide(make_request("trivy")) == OperatorDecision.PROCEED
        assert approver.decide(make_request("owasp")) == OperatorDecision.ABORT
        assert [r.stage_name for r in approver.requests] == ["trivy", "owasp"]

    def test_decisions_in_order(self):
        """Test decisions consumed in sequence."""
        approver = ScriptedApprover(["proceed", "abort"])

        assert approver.decide(make_request("a")) == OperatorDecision.PROCEED
        assert approver.decide(make_request("b")) == OperatorDecision.ABORT
        with pytest.raises(LookupError, match="exhausted"):
            approver.decide(make_request("c"))

    def test_unknown_stage(self):
        """Test that a stage without a scripted decision raises."""
        approver = ScriptedApprover({})

        with pytest.raises(LookupError, match="No scripted decision"):
            approver.decide(make_request("trivy"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
