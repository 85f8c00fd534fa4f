"""
Configuration domain models.

Validated configuration objects for the pipeline.
"""

from dataclasses import dataclass, field
import shlex
from typing import Optional

from .stages import OperatorDecision


GATE_TRIGGERS = ("failure", "always")
ACTION_TYPES = ("command", "sonar_quality_gate")


@dataclass(frozen=True)
class GateConfig:
    """Interactive approval gate placed after a stage's action."""

    prompt: str = "Scan reported problems. Proceed anyway?"
    ok_label: str = "Proceed"
    default_choice: OperatorDecision = OperatorDecision.PROCEED
    trigger: str = "failure"

    def __post_init__(self):
        """Validate gate configuration."""
        if not self.prompt:
            raise ValueError("gate prompt cannot be empty")
        if not self.ok_label:
            raise ValueError("gate ok_label cannot be empty")
        if self.trigger not in GATE_TRIGGERS:
            raise ValueError(
                f"gate trigger must be one of {GATE_TRIGGERS}, got {self.trigger!r}"
            )

    @classmethod
    def from_dict(cls, gate_dict: dict) -> 'GateConfig':
        """Create GateConfig from a YAML mapping."""
        return cls(
            prompt=gate_dict.get("prompt", cls.prompt),
            ok_label=gate_dict.get("ok_label", cls.ok_label),
            default_choice=OperatorDecision.parse(
                gate_dict.get("default_choice", OperatorDecision.PROCEED.value)
            ),
            trigger=gate_dict.get("trigger", "failure"),
        )


@dataclass(frozen=True)
class QualityGateConfig:
    """Connection settings for a SonarQube quality gate check."""

    server_url: str
    project_key: str
    token: Optional[str] = None
    poll_interval_sec: float = 5.0
    max_wait_sec: float = 300.0
    request_timeout_sec: float = 30.0

    def __post_init__(self):
        """Validate quality gate configuration."""
        if not self.server_url:
            raise ValueError("server_url cannot be empty")
        if not self.project_key:
            raise ValueError("project_key cannot be empty")
        if self.poll_interval_sec <= 0:
            raise ValueError(f"poll_interval_sec must be positive, got {self.poll_interval_sec}")
        if self.max_wait_sec <= 0:
            raise ValueError(f"max_wait_sec must be positive, got {self.max_wait_sec}")
        if self.request_timeout_sec <= 0:
            raise ValueError(f"request_timeout_sec must be positive, got {self.request_timeout_sec}")


@dataclass(frozen=True)
class StageConfig:
    """
    A single declared stage.

    Wraps exactly one external tool invocation. ``command`` is an argv list
    whose ``{NAME}`` placeholders are filled from the pipeline build args.
    """

    name: str
    action_type: str = "command"
    command: tuple[str, ...] = field(default_factory=tuple)

    # Process settings
    env: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    working_dir: Optional[str] = None
    timeout_sec: Optional[float] = None

    # Opaque scan report written by (or captured from) the tool
    report_path: Optional[str] = None

    # Behavior
    gate: Optional[GateConfig] = None
    skip: bool = False
    quality_gate: Optional[QualityGateConfig] = None

    def __post_init__(self):
        """Validate stage configuration."""
        if not self.name:
            raise ValueError("stage name cannot be empty")
        if self.action_type not in ACTION_TYPES:
            raise ValueError(
                f"Stage '{self.name}': action type must be one of {ACTION_TYPES}, "
                f"got {self.action_type!r}"
            )
        if self.action_type == "command" and not self.command:
            raise ValueError(f"Stage '{self.name}': command cannot be empty")
        if self.action_type == "sonar_quality_gate" and self.quality_gate is None:
            raise ValueError(f"Stage '{self.name}': quality_gate required for sonar_quality_gate")
        if self.timeout_sec is not None and self.timeout_sec <= 0:
            raise ValueError(
                f"Stage '{self.name}': timeout_sec must be positive, got {self.timeout_sec}"
            )
        if not isinstance(self.skip, bool):
            raise ValueError(
                f"Stage '{self.name}': skip must be true or false, got {self.skip!r}"
            )

    @property
    def is_gated(self) -> bool:
        """Check if the stage has an interactive approval gate."""
        return self.gate is not None

    @classmethod
    def from_dict(cls, stage_dict: dict) -> 'StageConfig':
        """
        Create StageConfig from a YAML mapping.

        ``command`` may be given as a list or as a single string, which is
        split with shell quoting rules. ``gate`` may be a mapping (an empty
        one keeps the default prompt) or ``true``.
        """
        command = stage_dict.get("command", [])
        if isinstance(command, str):
            command = shlex.split(command)

        gate = None
        gate_value = stage_dict.get("gate")
        if isinstance(gate_value, dict):
            gate = GateConfig.from_dict(gate_value)
        elif gate_value is True:
            gate = GateConfig()
        elif gate_value not in (None, False):
            raise ValueError(
                f"Stage '{stage_dict.get('name', '')}': gate must be a mapping or a boolean, "
                f"got {gate_value!r}"
            )

        quality_gate = None
        if stage_dict.get("quality_gate"):
            qg = stage_dict["quality_gate"]
            quality_gate = QualityGateConfig(
                server_url=qg.get("server_url", ""),
                project_key=qg.get("project_key", ""),
                token=qg.get("token"),
                poll_interval_sec=qg.get("poll_interval_sec", 5.0),
                max_wait_sec=qg.get("max_wait_sec", 300.0),
                request_timeout_sec=qg.get("request_timeout_sec", 30.0),
            )

        return cls(
            name=stage_dict.get("name", ""),
            action_type=stage_dict.get("type", "command"),
            command=tuple(str(part) for part in command),
            env=tuple(sorted((str(k), str(v)) for k, v in (stage_dict.get("env") or {}).items())),
            working_dir=stage_dict.get("working_dir"),
            timeout_sec=stage_dict.get("timeout_sec"),
            report_path=stage_dict.get("report_path"),
            gate=gate,
            skip=stage_dict.get("skip", False),
            quality_gate=quality_gate,
        )


@dataclass(frozen=True)
class PipelineConfig:
    """
    Complete pipeline configuration.

    Immutable configuration object validated at creation.
    """

    # Stage declarations, in execution order
    stages: tuple[StageConfig, ...]

    # Values substituted into stage commands, e.g. an API key
    build_args: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    # Approval behavior
    approval_timeout_sec: Optional[float] = None

    # Run metadata
    run_name: str = "pipeline_run"
    base_output_dir: str = "./output"
    show_progress: bool = False

    def __post_init__(self):
        """Validate pipeline configuration."""
        if not self.stages:
            raise ValueError("At least one stage must be declared")

        names = [stage.name for stage in self.stages]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Stage names must be unique, duplicated: {duplicates}")

        if self.approval_timeout_sec is not None and self.approval_timeout_sec <= 0:
            raise ValueError(
                f"approval_timeout_sec must be positive, got {self.approval_timeout_sec}"
            )

        if not isinstance(self.show_progress, bool):
            raise ValueError(
                f"show_progress must be true or false, got {self.show_progress!r}"
            )

    @property
    def stage_names(self) -> list[str]:
        """Stage names in declaration order."""
        return [stage.name for stage in self.stages]

    @property
    def build_args_dict(self) -> dict[str, str]:
        """Build arguments as a plain dict."""
        return dict(self.build_args)

    def with_build_args(self, overrides: dict[str, str]) -> 'PipelineConfig':
        """Return a new config with build args merged with overrides."""
        merged = self.build_args_dict
        merged.update(overrides)
        return PipelineConfig(
            stages=self.stages,
            build_args=tuple(sorted(merged.items())),
            approval_timeout_sec=self.approval_timeout_sec,
            run_name=self.run_name,
            base_output_dir=self.base_output_dir,
            show_progress=self.show_progress,
        )

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'PipelineConfig':
        """
        Create PipelineConfig from a dictionary (e.g., loaded from YAML).

        Args:
            config_dict: Dictionary with configuration values

        Returns:
            Validated PipelineConfig instance
        """
        stages = tuple(
            StageConfig.from_dict(stage_dict)
            for stage_dict in config_dict.get("stages", []) or []
        )

        build_args = config_dict.get("build_args", {}) or {}
        approval = config_dict.get("approval", {}) or {}
        run_metadata = config_dict.get("run_metadata", {}) or {}

        return cls(
            stages=stages,
            build_args=tuple(sorted((str(k), str(v)) for k, v in build_args.items())),
            approval_timeout_sec=approval.get("timeout_sec"),
            run_name=run_metadata.get("run_name", "pipeline_run"),
            base_output_dir=run_metadata.get("base_output_dir", "./output"),
            show_progress=run_metadata.get("show_progress", False),
        )
