"""
Path utilities for pipeline.

Handles timestamped run directories and report path management.
"""

import os
from datetime import datetime


RUN_SUBDIRS = ("reports", "logs")


def create_timestamped_run_dir(base_output_dir: str, run_name: str = None) -> str:
    """
    Create a timestamped directory for the current pipeline run.

    Args:
        base_output_dir: Base output directory (e.g., "./output")
        run_name: Optional run name to include in directory

    Returns:
        Path to the timestamped run directory

    Example:
        create_timestamped_run_dir("./output", "netflix_deploy")
        -> "./output/netflix_deploy_20260216_211730"
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    if run_name:
        dir_name = f"{run_name}_{timestamp}"
    else:
        dir_name = f"run_{timestamp}"

    run_dir = os.path.join(base_output_dir, dir_name)
    os.makedirs(run_dir, exist_ok=True)

    return run_dir


def _set_if_relative(config: dict, key: str, value: str):
    """Only overwrite a path if it's relative (not an absolute override)."""
    if key in config and config[key] and not os.path.isabs(config[key]):
        config[key] = value


def update_config_paths_with_run_dir(config_dict: dict, run_dir: str) -> dict:
    """
    Point stage report files into the run directory.

    Relative ``report_path`` values are placed under ``<run_dir>/reports/``.
    Absolute paths are left untouched, so a stage can write its report
    anywhere by setting an absolute path in config.yaml.

    Standard sub-directory layout under run_dir:
        reports/  - plain-text scan reports
        logs/     - run report JSON

    Args:
        config_dict: Configuration dictionary
        run_dir: Run directory path

    Returns:
        Updated configuration dictionary
    """
    updated_config = config_dict.copy()

    for d in RUN_SUBDIRS:
        os.makedirs(os.path.join(run_dir, d), exist_ok=True)

    reports_dir = os.path.join(run_dir, "reports")
    stages = []
    for stage_dict in updated_config.get("stages", []) or []:
        stage_dict = dict(stage_dict)
        report_path = stage_dict.get("report_path")
        if report_path:
            _set_if_relative(stage_dict, "report_path", os.path.join(reports_dir, report_path))
        stages.append(stage_dict)
    updated_config["stages"] = stages

    return updated_config
