"""
QualityGateAction - Waits for a SonarQube quality gate verdict.

Single responsibility: poll the SonarQube web API until the project's
quality gate is computed, then report pass/fail.
"""

import json
import time
from typing import Callable, Optional

import requests

from domain.config import QualityGateConfig
from domain.stages import ActionOutcome
from services import consts
from .base import StageAction


class QualityGateAction(StageAction):
    """
    Stage action that polls SonarQube for a quality gate status.

    ``OK`` and ``WARN`` count as success, ``ERROR`` as failure. Any other
    status (``NONE`` while the analysis is still being processed) keeps
    polling until ``max_wait_sec`` runs out.
    """

    def __init__(
        self,
        stage_name: str,
        config: QualityGateConfig,
        report_path: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize quality gate action.

        Args:
            stage_name: Name of the stage
            config: SonarQube connection settings
            report_path: Optional file receiving the last API response
            sleep: Sleep function between polls
            clock: Monotonic clock used for the overall deadline
        """
        super().__init__(stage_name, report_path)
        self.config = config
        self._sleep = sleep
        self._clock = clock

    @property
    def url(self) -> str:
        return self.config.server_url.rstrip("/") + consts.SONAR_PROJECT_STATUS_PATH

    def describe(self) -> str:
        return f"quality gate {self.config.project_key} @ {self.config.server_url}"

    def run(self) -> ActionOutcome:
        """Poll until the quality gate passes, fails or the wait runs out."""
        deadline = self._clock() + self.config.max_wait_sec
        last_body = ""
        last_error = None

        self.logger.info(f"Waiting for {self.describe()}")

        while True:
            try:
                status, last_body = self._fetch_status()
                last_error = None
            except (requests.RequestException, ValueError, KeyError) as e:
                last_error = f"Could not read quality gate status: {e}"
                self.logger.warning(last_error)
                status = None

            if status in consts.SONAR_STATUS_PASSED:
                self.logger.info(f"Quality gate passed with status {status}")
                return self._outcome(0, last_body, None)

            if status in consts.SONAR_STATUS_FAILED:
                self.logger.warning(f"Quality gate failed with status {status}")
                return self._outcome(1, last_body, f"Quality gate status {status}")

            if self._clock() >= deadline:
                message = last_error or f"Quality gate not computed after {self.config.max_wait_sec}s"
                self.logger.error(message)
                return self._outcome(consts.EXIT_CODE_TIMEOUT, last_body, message)

            self.logger.debug(f"Quality gate status {status}, polling again")
            self._sleep(self.config.poll_interval_sec)

    def _fetch_status(self) -> tuple[str, str]:
        """
        Fetch the current quality gate status.

        Returns:
            Tuple of (status, raw response body)
        """
        auth = (self.config.token, "") if self.config.token else None
        response = requests.get(
            self.url,
            params={"projectKey": self.config.project_key},
            auth=auth,
            timeout=self.config.request_timeout_sec,
        )
        response.raise_for_status()

        data = json.loads(response.text)
        return data["projectStatus"]["status"], response.text

    def _outcome(self, exit_code: int, body: str, error_message: Optional[str]) -> ActionOutcome:
        return ActionOutcome(
            exit_code=exit_code,
            output=body,
            report_path=self._write_report(body),
            error_message=error_message,
        )
