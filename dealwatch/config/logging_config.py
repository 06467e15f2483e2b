# dealwatch/config/logging_config.py

"""Run-scoped log files for the dealwatch commands and scheduler.

``setup_logging`` opens ``logs/run_<YYYYMMDD_HHMMSS>.log`` and attaches it
to the ``dealwatch`` logger, so one ingest, promotion pass or scheduler
session reads as a single file.  Warnings raised by APScheduler itself
(missed runs, job crashes) are written to the same file.

Jobs execute on worker threads, which is why the file format carries
the thread name.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from dealwatch.config.settings import Settings

# Formats ------------------------------------------------------------------

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# APScheduler logs every job execution at INFO
_SCHEDULER_LOGGER = "apscheduler"


def _file_level(level: str | None) -> int:
    resolved = logging.getLevelName((level or Settings.LOG_LEVEL).upper())
    return resolved if isinstance(resolved, int) else logging.DEBUG


def setup_logging(level: str | None = None) -> Path:
    """Attach this run's file and console handlers.

    Args:
        level: File handler level name such as ``"info"``.  Falls back to
            ``Settings.LOG_LEVEL``; unknown names mean DEBUG.

    Returns:
        Path of the run's log file.  A second call in the same process
        keeps the existing handlers.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"

    app_logger = logging.getLogger("dealwatch")
    app_logger.setLevel(logging.DEBUG)
    if app_logger.handlers:
        return log_file

    # --- Run file ------------------------------------------------------------
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(_file_level(level))
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)
    )

    # --- Stderr, warnings only ----------------------------------------------
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    app_logger.addHandler(file_handler)
    app_logger.addHandler(console_handler)

    scheduler_logger = logging.getLogger(_SCHEDULER_LOGGER)
    scheduler_logger.setLevel(logging.WARNING)
    scheduler_logger.addHandler(file_handler)

    app_logger.info("Writing run log to %s", log_file)
    return log_file
