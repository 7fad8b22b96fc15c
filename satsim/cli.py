"""Command line entry point.

Usage:
    python -m satsim run CONFIG.json [--output out.csv] [--log-level INFO] [--progress]

The output format follows the file suffix: ``.parquet`` writes Parquet,
anything else CSV. The exit status is 0 when the run completes, 1 when it
stops early and 2 for an invalid configuration.
"""

import argparse
import logging
import sys
from pathlib import Path

from satsim import __version__
from satsim.config import SimulationConfig
from satsim.errors import ConfigurationError
from satsim.log import configure_logging
from satsim.propagation import ProgressStepHandler
from satsim.simulation import Simulation

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="satsim",
        description="Coupled orbit/attitude satellite simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m satsim run detumble.json
  python -m satsim run detumble.json --output output/detumble.parquet
  python -m satsim run detumble.json --progress --log-level DEBUG
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run a simulation from a JSON configuration")
    run.add_argument("config", type=Path, help="Path of the JSON configuration")
    run.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Ephemeris output file (.csv or .parquet)",
    )
    run.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    run.add_argument("--log-file", type=Path, default=None, help="Also log to this file")
    run.add_argument("--progress", action="store_true", help="Show a progress bar")
    return parser


def run_command(args: argparse.Namespace) -> int:
    try:
        config = SimulationConfig.from_json(args.config)
        simulation = Simulation.from_config(config)
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    handlers = [ProgressStepHandler(config.name)] if args.progress else []
    result = simulation.run(handlers=handlers)

    if args.output is not None:
        if args.output.suffix == ".parquet":
            result.ephemeris.write_parquet(args.output)
        else:
            result.ephemeris.write_csv(args.output)

    summary = result.summary
    logger.info(
        "Run '%s' %s at t=%.3f s (%d steps, %d rejected)",
        config.name, summary.reason.value, summary.end_time,
        summary.steps, summary.rejected_steps,
    )
    return 0 if summary.success else 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, log_file=args.log_file)
    if args.command == "run":
        return run_command(args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
