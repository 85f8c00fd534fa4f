"""
ActionFactory - Builds stage actions from configuration.
"""

import re
from dataclasses import replace
from typing import Optional

from domain.config import PipelineConfig, StageConfig
from services import consts
from .base import StageAction
from .command import CommandAction
from .quality_gate import QualityGateAction


_BUILD_ARG_RE = re.compile(consts.BUILD_ARG_PATTERN)


def substitute_build_args(text: str, build_args: dict[str, str], stage_name: str = "") -> str:
    """
    Replace ``{NAME}`` placeholders with build argument values.

    Braces that do not form a plain identifier (e.g. ``{{.ID}}`` in a
    template flag) are left untouched.

    Raises:
        ValueError: If a placeholder names an undefined build argument
    """
    def _replace(match):
        name = match.group(1)
        if name not in build_args:
            raise ValueError(f"Stage '{stage_name}' references undefined build arg '{name}'")
        return build_args[name]

    return _BUILD_ARG_RE.sub(_replace, text)


class ActionFactory:
    """Creates one StageAction per declared stage."""

    def __init__(self, build_args: Optional[dict[str, str]] = None):
        self.build_args = dict(build_args or {})

    def create(self, stage: StageConfig) -> StageAction:
        """
        Build the action for a stage.

        Args:
            stage: Stage configuration

        Returns:
            StageAction ready to run
        """
        if stage.action_type == "sonar_quality_gate":
            quality_gate = stage.quality_gate
            if quality_gate.token:
                quality_gate = replace(
                    quality_gate,
                    token=substitute_build_args(quality_gate.token, self.build_args, stage.name),
                )
            return QualityGateAction(
                stage_name=stage.name,
                config=quality_gate,
                report_path=stage.report_path,
            )

        argv = [substitute_build_args(part, self.build_args, stage.name) for part in stage.command]
        env = {
            key: substitute_build_args(value, self.build_args, stage.name)
            for key, value in stage.env
        }
        return CommandAction(
            stage_name=stage.name,
            argv=argv,
            env=env,
            working_dir=stage.working_dir,
            timeout_sec=stage.timeout_sec,
            report_path=stage.report_path,
        )

    def create_all(self, config: PipelineConfig) -> dict[str, StageAction]:
        """Build actions for every stage, keyed by stage name."""
        return {stage.name: self.create(stage) for stage in config.stages}
