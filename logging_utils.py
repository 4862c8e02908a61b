"""
Logging setup shared by the collector and synthesizer CLIs.

Console output stays as bare progress lines; an optional log file gets
timestamps and logger names for audit trails.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path


def setup_logging(log_file=None, verbose=False):
    """Configure the ROOT logger so every module logger inherits the handlers.

    Returns the path of the log file, or None when logging to console only.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear existing handlers to avoid duplicates across repeated runs
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    if not log_file:
        return None

    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(file_handler)

    logging.getLogger("radar").info("Log file: %s (started %s)", path, datetime.now().isoformat())
    return str(path)


def log_run_report(logger, reports, run_time):
    """Print the per-step report block at the end of a run."""
    logger.info("\n" + "=" * 70)
    logger.info("RUN REPORT")
    logger.info("=" * 70)
    for r in reports:
        logger.info("  " + r.summary())
    logger.info("  Total runtime: %ss", run_time)
    logger.info("=" * 70)
