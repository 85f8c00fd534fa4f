#!/usr/bin/env python3
"""
Main entry point for the deployment pipeline.

Supports:
  - Running the declared stages in order (default)
  - Passing build arguments via --build-arg KEY=VALUE (e.g. an API key)
  - Non-interactive gates via --auto-approve / --auto-abort
  - Shared run directory via --run-dir
  - Config validation via --dry-run

Stages run strictly sequentially. A gated stage that fails pauses the run
and asks the operator whether to proceed anyway or abort.
"""

import sys
import os
import logging
import argparse
import yaml

from domain.config import PipelineConfig
from pipeline.executor import PipelineExecutor
from services.approval import ApprovalChannel, AutoApprover, ConsoleApprover
from domain.stages import OperatorDecision
from utils.paths import create_timestamped_run_dir, update_config_paths_with_run_dir


def setup_logging(level: str = "INFO"):
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def load_config(config_path: str) -> dict:
    """Load configuration from YAML file."""
    with open(config_path, 'r') as f:
        return yaml.safe_load(f) or {}


def parse_build_args(values: list[str]) -> dict[str, str]:
    """
    Parse KEY=VALUE pairs given on the command line.

    Raises:
        ValueError: If a pair has no '=' or an empty key
    """
    build_args = {}
    for value in values or []:
        key, sep, arg = value.partition("=")
        if not sep or not key:
            raise ValueError(f"Build arg must look like KEY=VALUE, got {value!r}")
        build_args[key] = arg
    return build_args


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Deployment pipeline - gated stage sequencer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run all stages, prompting at gates
  python main.py

  # Custom config and API key build argument
  python main.py --config my_pipeline.yaml --build-arg TMDB_V3_API_KEY=abc123

  # Unattended run that continues past failed scans
  python main.py --auto-approve

  # Dry-run to validate config
  python main.py --dry-run
        """
    )

    parser.add_argument(
        "--config", type=str, default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Validate configuration and list stages without running them"
    )
    parser.add_argument(
        "--run-dir", type=str, default=None,
        help="Pre-created run directory (skips timestamped dir creation)"
    )
    parser.add_argument(
        "--build-arg", action="append", default=[], metavar="KEY=VALUE",
        help="Build argument substituted into stage commands (repeatable)"
    )

    # --- Gate options ---
    gate_group = parser.add_argument_group("Gate Options")
    decision = gate_group.add_mutually_exclusive_group()
    decision.add_argument(
        "--auto-approve", action="store_true",
        help="Answer every gate with 'proceed' instead of prompting"
    )
    decision.add_argument(
        "--auto-abort", action="store_true",
        help="Answer every gate with 'abort' instead of prompting"
    )

    args = parser.parse_args(argv)

    try:
        args.build_args = parse_build_args(args.build_arg)
    except ValueError as e:
        parser.error(str(e))

    return args


def build_approval_channel(args, config: PipelineConfig) -> ApprovalChannel:
    """Pick the decision provider requested on the command line."""
    if args.auto_approve:
        provider = AutoApprover(OperatorDecision.PROCEED)
    elif args.auto_abort:
        provider = AutoApprover(OperatorDecision.ABORT)
    else:
        provider = ConsoleApprover()
    return ApprovalChannel(provider=provider, timeout_sec=config.approval_timeout_sec)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("Deployment Pipeline")
    logger.info("=" * 60)

    try:
        logger.info(f"Loading configuration from: {args.config}")
        config_dict = load_config(args.config)

        # Determine run directory
        if args.run_dir:
            run_dir = args.run_dir
            os.makedirs(run_dir, exist_ok=True)
            logger.info(f"Using run directory: {run_dir}")
        else:
            run_metadata = config_dict.get('run_metadata', {}) or {}
            run_name = run_metadata.get('run_name', 'pipeline_run')
            base_output = run_metadata.get('base_output_dir', './output')
            run_dir = create_timestamped_run_dir(base_output, run_name)
            logger.info(f"Created timestamped run directory: {run_dir}")

        # Update report paths to use run directory
        config_dict = update_config_paths_with_run_dir(config_dict, run_dir)

        # Create validated config; CLI build args override YAML values
        config = PipelineConfig.from_dict(config_dict)
        if args.build_args:
            config = config.with_build_args(args.build_args)
        logger.info("Configuration loaded and validated successfully")

        executor = PipelineExecutor(config, approval_channel=build_approval_channel(args, config))

        if args.dry_run:
            logger.info("Dry run mode - configuration is valid, exiting")
            for line in executor.describe_stages():
                logger.info(f"  {line}")
            logger.info(f"Run directory: {run_dir}")
            return 0

        final_run = executor.run()
        executor.save_run_report(run_dir, final_run)

        if final_run.is_successful:
            logger.info("✓ Pipeline completed successfully")
            return 0
        else:
            logger.error(f"✗ Pipeline aborted: {final_run.error_message}")
            return 1

    except KeyboardInterrupt:
        logger.error("✗ Pipeline aborted: interrupted by operator")
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
