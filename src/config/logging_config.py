# src/config/logging_config.py

"""Run-scoped logging for ark_research.

One file per CLI invocation under ``logs/`` captures every
``ark_research.*`` record at DEBUG, so a search can be traced from key
derivation through cache probe, upstream call and any fallback.  The
terminal only sees warnings; stdout carries search output.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

ROOT_LOGGER_NAME = "ark_research"

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _run_log_path(logs_dir: Path) -> Path:
    logs_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return logs_dir / f"run_{stamp}.log"


def _file_handler(path: Path) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    return handler


def setup_logging(logs_dir: Path | None = None) -> Path:
    """Attach the run file and console handlers to ``ark_research``.

    Safe to call more than once: handlers are only attached the first
    time.  Returns the log file path chosen for this call.
    """
    log_file = _run_log_path(logs_dir or Settings.LOGS_DIR)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)
    if root_logger.handlers:
        return log_file

    root_logger.addHandler(_file_handler(log_file))
    root_logger.addHandler(_console_handler())
    root_logger.info("Logging to %s", log_file)
    return log_file
