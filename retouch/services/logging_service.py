"""
Logging service for the Retouch application.

Console output plus one log file per day. Log files are stored in
~/.local/share/retouch/logs/ by default; RETOUCH_LOG_DIR overrides the
directory and RETOUCH_LOG_LEVEL (a level name such as DEBUG) the level.
Only the most recent LOG_RETENTION_DAYS files are kept.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional


# Default log directory following XDG Base Directory Specification
DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "retouch" / "logs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_PREFIX = "retouch_"
LOG_RETENTION_DAYS = 14

# Module-level flag to track if logging has been set up
_logging_initialized = False


def resolve_log_level(default: int) -> int:
    """Level from RETOUCH_LOG_LEVEL, or default if unset or unknown."""
    name = os.environ.get("RETOUCH_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else None
    return level if isinstance(level, int) else default


def prune_old_logs(log_dir: Path, keep: int = LOG_RETENTION_DAYS) -> List[Path]:
    """
    Delete all but the newest `keep` daily log files.

    Returns:
        The files that were removed.
    """
    # Date-stamped names sort chronologically
    files = sorted(log_dir.glob(f"{LOG_FILE_PREFIX}*.log"))
    stale = files[:-keep] if keep > 0 else files
    removed = []
    for path in stale:
        try:
            path.unlink()
            removed.append(path)
        except OSError:
            continue
    return removed


def setup_logging(
    log_level: int = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the logging system for Retouch.

    Args:
        log_level: The logging level, unless RETOUCH_LOG_LEVEL is set.
        log_to_file: Whether to also log to a file.
        log_dir: Directory for log files. Defaults to RETOUCH_LOG_DIR, then
                 ~/.local/share/retouch/logs/

    This function should be called once at application startup; later
    calls are ignored.
    """
    global _logging_initialized

    if _logging_initialized:
        return

    if log_dir is None:
        env_dir = os.environ.get("RETOUCH_LOG_DIR")
        log_dir = Path(env_dir).expanduser() if env_dir else DEFAULT_LOG_DIR
    log_level = resolve_log_level(log_level)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / f"{LOG_FILE_PREFIX}{datetime.now().strftime('%Y%m%d')}.log"

            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

            for path in prune_old_logs(log_dir):
                root_logger.debug(f"Removed old log file {path.name}")

        except OSError as e:
            # Console only; keep the console quiet about anything below warnings
            console_handler.setLevel(logging.WARNING)
            root_logger.warning(f"Could not create log file: {e}. Logging to console only.")

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger, typically __name__ of the calling module.

    Usage:
        from retouch.services.logging_service import get_logger
        logger = get_logger(__name__)
        logger.info("Session opened")
    """
    return logging.getLogger(name)
