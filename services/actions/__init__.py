"""
Stage action services.

Wrappers around the external tools each stage invokes.
"""

from .base import StageAction
from .command import CommandAction
from .quality_gate import QualityGateAction
from .factory import ActionFactory, substitute_build_args

__all__ = [
    "StageAction",
    "CommandAction",
    "QualityGateAction",
    "ActionFactory",
    "substitute_build_args",
]
