"""
Logging utilities with size-based file rotation.

Every module asks for a named logger through setup_logger(); all of them share
one log file per process run, stored under LOG_DIR/<date>/.
"""

import datetime
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_FILE_BASENAME = "videotube_accounts"

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

MAX_LOG_SIZE_BYTES = 5 * 1024 * 1024
MAX_BACKUP_COUNT = 10
KEEP_DAYS = 7

_run_started = datetime.datetime.now()
_log_file: Path | None = None


def _get_log_file() -> Path:
    """Resolve (and create the directory for) the shared per-run log file."""
    global _log_file
    if _log_file is None:
        date_dir = LOG_DIR / _run_started.strftime("%Y-%m-%d")
        date_dir.mkdir(parents=True, exist_ok=True)
        stamp = _run_started.strftime("%Y-%m-%d_%H-%M-%S")
        _log_file = date_dir / f"{LOG_FILE_BASENAME}_{stamp}.log"
    return _log_file


class SafeRotatingFileHandler(RotatingFileHandler):
    """Rotating handler that keeps writing to the current file if rollover fails."""

    def doRollover(self):
        try:
            super().doRollover()
        except OSError as e:
            sys.stderr.write(f"Log rotation failed: {e}. Continuing with current log file.\n")
            sys.stderr.flush()


def _get_log_level(level_str: str) -> int:
    level = logging.getLevelName(level_str.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: str, level: str = None) -> logging.Logger:
    """Set up logger with both console and file handlers."""
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

    try:
        file_handler = SafeRotatingFileHandler(
            _get_log_file(),
            maxBytes=MAX_LOG_SIZE_BYTES,
            backupCount=MAX_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as e:
        logger.warning(f"File logging disabled: {e}")
    else:
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)
        cleanup_old_logs(keep_days=KEEP_DAYS)

    return logger


def cleanup_old_logs(keep_days: int = KEEP_DAYS) -> int:
    """Remove date directories (and their files) older than keep_days."""
    if not LOG_DIR.exists():
        return 0

    cutoff = datetime.datetime.now() - datetime.timedelta(days=keep_days)
    deleted = 0
    for date_dir in LOG_DIR.iterdir():
        if not date_dir.is_dir():
            continue
        try:
            dir_date = datetime.datetime.strptime(date_dir.name, "%Y-%m-%d")
        except ValueError:
            continue
        if dir_date >= cutoff:
            continue
        for log_file in date_dir.iterdir():
            try:
                log_file.unlink()
                deleted += 1
            except OSError:
                pass
        try:
            date_dir.rmdir()
        except OSError:
            pass
    return deleted
