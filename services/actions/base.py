"""
Base stage action.

A stage action wraps one external tool invocation and reports its
success/failure signal plus an opaque text report.
"""

from abc import ABC, abstractmethod
import logging
import os
from typing import Optional

from domain.stages import ActionOutcome


class StageAction(ABC):
    """Base class for stage actions."""

    def __init__(self, stage_name: str, report_path: Optional[str] = None):
        """
        Initialize stage action.

        Args:
            stage_name: Name of the stage this action belongs to
            report_path: Optional file that receives the tool's text output
        """
        self.stage_name = stage_name
        self.report_path = report_path
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def run(self) -> ActionOutcome:
        """
        Invoke the external tool.

        Returns:
            ActionOutcome with exit code and report
        """
        pass

    def describe(self) -> str:
        """Human-readable summary used in dry runs."""
        return self.__class__.__name__

    def _write_report(self, text: str) -> Optional[str]:
        """
        Write the tool output to the report file, if one is configured.

        Returns:
            Report path, or None if no report is configured or writing failed
        """
        if not self.report_path:
            return None

        try:
            report_dir = os.path.dirname(self.report_path)
            if report_dir:
                os.makedirs(report_dir, exist_ok=True)
            with open(self.report_path, "w") as f:
                f.write(text)
        except OSError as e:
            self.logger.warning(f"Could not write report {self.report_path}: {e}")
            return None

        self.logger.info(f"Report for stage '{self.stage_name}' saved to: {self.report_path}")
        return self.report_path
