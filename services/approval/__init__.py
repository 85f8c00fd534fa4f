"""
Approval services.

Channel and decision providers for interactive approval gates.
"""

from .channel import ApprovalChannel, ApprovalRequest
from .providers import (
    DecisionProvider,
    ConsoleApprover,
    ScriptedApprover,
    AutoApprover,
)

__all__ = [
    "ApprovalChannel",
    "ApprovalRequest",
    "DecisionProvider",
    "ConsoleApprover",
    "ScriptedApprover",
    "AutoApprover",
]
