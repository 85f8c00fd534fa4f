"""
CommandAction - Runs an external command for a stage.

Single responsibility: invoke one process and translate its completion
into an ActionOutcome.
"""

import os
import subprocess
from typing import Optional

from domain.stages import ActionOutcome
from services import consts
from .base import StageAction


class CommandAction(StageAction):
    """
    Stage action that runs an argv with subprocess.

    Output (stdout followed by stderr) is captured as text and, when a
    report path is configured, written there for the operator.
    """

    def __init__(
        self,
        stage_name: str,
        argv: list[str],
        env: Optional[dict[str, str]] = None,
        working_dir: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        report_path: Optional[str] = None,
    ):
        """
        Initialize command action.

        Args:
            stage_name: Name of the stage
            argv: Command and arguments, build args already substituted
            env: Variables layered over the current environment
            working_dir: Directory to run the command in
            timeout_sec: Kill the command after this many seconds
            report_path: Optional file receiving the captured output
        """
        super().__init__(stage_name, report_path)
        if not argv:
            raise ValueError(f"Stage '{stage_name}': argv cannot be empty")

        self.argv = list(argv)
        self.env = dict(env or {})
        self.working_dir = working_dir
        self.timeout_sec = timeout_sec

    def describe(self) -> str:
        return " ".join(self.argv)

    def run(self) -> ActionOutcome:
        """Run the command and wait for it to finish."""
        self.logger.info(f"Running: {self.describe()}")

        process_env = None
        if self.env:
            process_env = os.environ.copy()
            process_env.update(self.env)

        try:
            result = subprocess.run(
                self.argv,
                capture_output=True,
                text=True,
                cwd=self.working_dir,
                env=process_env,
                timeout=self.timeout_sec,
            )
        except FileNotFoundError:
            message = f"Command not found: {self.argv[0]}"
            self.logger.error(message)
            return self._outcome(consts.EXIT_CODE_NOT_FOUND, "", message)
        except PermissionError:
            message = f"Command not executable: {self.argv[0]}"
            self.logger.error(message)
            return self._outcome(consts.EXIT_CODE_NOT_EXECUTABLE, "", message)
        except subprocess.TimeoutExpired as e:
            message = f"Command timed out after {self.timeout_sec}s"
            self.logger.error(message)
            return self._outcome(consts.EXIT_CODE_TIMEOUT, self._decode(e.stdout) + self._decode(e.stderr), message)

        output = (result.stdout or "") + (result.stderr or "")
        for line in output.splitlines():
            self.logger.debug(f"[{self.stage_name}] {line}")

        if result.returncode != 0:
            self.logger.warning(f"Command exited with {result.returncode}: {self.describe()}")
            return self._outcome(result.returncode, output, None)

        return self._outcome(0, output, None)

    def _outcome(self, exit_code: int, output: str, error_message: Optional[str]) -> ActionOutcome:
        report_text = output if error_message is None else f"{output}{error_message}\n"
        return ActionOutcome(
            exit_code=exit_code,
            output=output,
            report_path=self._write_report(report_text),
            error_message=error_message,
        )

    @staticmethod
    def _decode(data) -> str:
        """TimeoutExpired carries bytes even when text=True was requested."""
        if data is None:
            return ""
        if isinstance(data, bytes):
            return data.decode(errors="replace")
        return data
