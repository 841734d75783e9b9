"""
Logging utilities with size-based file rotation.

Key Features:
    - One log file per process run, grouped in date directories
    - Rotation that survives file permission errors (Windows file locks)
    - Level, directory and file output controlled through environment variables
    - Automatic cleanup of old log directories
"""

import datetime
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_FILE_BASENAME = "timeline_events"

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() in ("1", "true", "yes")

MAX_LOG_SIZE_MB = 5
MAX_LOG_SIZE_BYTES = MAX_LOG_SIZE_MB * 1024 * 1024
MAX_BACKUP_COUNT = 10

# Shared by every logger of the process; created on first file handler setup
_run_log_file: Path | None = None
_cleanup_done = False


def _get_run_log_file() -> Path:
    global _run_log_file
    if _run_log_file is None:
        now = datetime.datetime.now()
        date_dir = LOG_DIR / now.strftime("%Y-%m-%d")
        date_dir.mkdir(parents=True, exist_ok=True)
        run_timestamp = now.strftime("%Y-%m-%d_%H-%M-%S")
        _run_log_file = date_dir / f"{LOG_FILE_BASENAME}_{run_timestamp}.log"
    return _run_log_file


class SafeRotatingFileHandler(RotatingFileHandler):
    """Size-based rotation handler that keeps writing when rotation fails."""

    def doRollover(self):
        try:
            super().doRollover()
        except (OSError, PermissionError) as e:
            # The logger itself is unusable here, report on stderr
            sys.stderr.write(
                f"Log rotation failed: {e}. Continuing with current log file.\n"
            )
            sys.stderr.flush()


def _get_log_level(level_str: str) -> int:
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(level_str.upper(), logging.INFO)


def setup_logger(name: str, level: str = None) -> logging.Logger:
    """Set up a logger with a console handler and, if enabled, the run log file."""
    global _cleanup_done
    logger = logging.getLogger(name)

    log_level = _get_log_level(level or DEFAULT_LOG_LEVEL)
    logger.setLevel(log_level)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
    logger.addHandler(console_handler)

    if LOG_TO_FILE:
        try:
            file_handler = SafeRotatingFileHandler(
                _get_run_log_file(),
                maxBytes=MAX_LOG_SIZE_BYTES,
                backupCount=MAX_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as e:
            sys.stderr.write(f"File logging disabled for '{name}': {e}\n")
        else:
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
            logger.addHandler(file_handler)

            if not _cleanup_done:
                _cleanup_done = True
                cleanup_old_logs(keep_days=7)

    return logger


def cleanup_old_logs(keep_days: int = 7) -> tuple[int, int]:
    """
    Delete date directories older than `keep_days`.

    Files locked by another process are skipped. Returns the number of
    deleted and failed files.
    """
    if not LOG_DIR.exists():
        return 0, 0

    cutoff_time = datetime.datetime.now() - datetime.timedelta(days=keep_days)
    deleted_count = 0
    failed_count = 0

    for date_dir in LOG_DIR.iterdir():
        if not date_dir.is_dir():
            continue
        try:
            dir_date = datetime.datetime.strptime(date_dir.name, "%Y-%m-%d")
        except ValueError:
            # Not one of ours
            continue
        if dir_date >= cutoff_time:
            continue

        for log_file in date_dir.iterdir():
            try:
                log_file.unlink()
                deleted_count += 1
            except OSError:
                failed_count += 1
        try:
            date_dir.rmdir()
        except OSError:
            pass  # still holds files that could not be deleted

    if deleted_count or failed_count:
        sys.stderr.write(
            f"Log cleanup completed: {deleted_count} files deleted, {failed_count} files failed to delete\n"
        )
    return deleted_count, failed_count
