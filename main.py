# main.py

"""Entry point for the dealwatch pipeline (one-shot commands or scheduler)."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dealwatch.config.logging_config import setup_logging
from dealwatch.errors import StorageError

logger = logging.getLogger("dealwatch.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="dealwatch",
        description="Flash-sale catalog cleaning and price alerts.",
    )
    command = parser.add_mutually_exclusive_group(required=True)
    command.add_argument(
        "--ingest",
        type=Path,
        default=None,
        metavar="FILE",
        help="Push a JSON file of observations through the pipeline.",
    )
    command.add_argument(
        "--promote",
        action="store_true",
        help="Promote eligible candidates into the catalog.",
    )
    command.add_argument(
        "--record-trends",
        action="store_true",
        dest="record_trends",
        help="Snapshot today's price of every catalog product.",
    )
    command.add_argument(
        "--check-prices",
        action="store_true",
        dest="check_prices",
        help="Send due price alerts.",
    )
    command.add_argument(
        "--health",
        action="store_true",
        help="Report the freshness of every background job.",
    )
    command.add_argument(
        "--serve",
        action="store_true",
        help="Run all background jobs on their schedule.",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite database path (default: data/dealwatch.db).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        dest="log_level",
        help="Log file level (default: DEBUG).",
    )
    return parser


def _dispatch(args: argparse.Namespace) -> int:
    """Open the app, run the selected command and return its exit code."""
    from dealwatch.cli import runner

    app = runner.build_app(args.db)
    try:
        if args.ingest is not None:
            return runner.run_ingest(app, args.ingest)
        if args.promote:
            return runner.run_promote(app)
        if args.record_trends:
            return runner.run_record_trends(app)
        if args.check_prices:
            return runner.run_price_check(app)
        if args.health:
            return runner.run_health_check(app)
        try:
            return asyncio.run(runner.run_serve(app))
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")
            return 0
    finally:
        app.close()


def main() -> None:
    """Parse arguments and route to the requested command."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging(args.log_level)
    logger.info("dealwatch starting, log file: %s", log_file)

    try:
        exit_code = _dispatch(args)
    except StorageError:
        logger.critical("Database unavailable", exc_info=True)
        exit_code = 1
    finally:
        logger.info("dealwatch shutting down")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
