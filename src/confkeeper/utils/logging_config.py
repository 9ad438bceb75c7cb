"""Logging configuration for confkeeper.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- A timing decorator for store operations

Environment Variables:
    CONFKEEPER_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    CONFKEEPER_LOG_FILE: Path to log file (default: ~/.confkeeper/confkeeper.log)
    CONFKEEPER_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    CONFKEEPER_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from confkeeper.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("save_version")
    def save_version(self, software_id, ...):
        ...
"""
import functools
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("confkeeper.perf")

_MAIN_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-32s | %(levelname)-7s | %(message)s"
_PERF_FORMAT = "%(asctime)s.%(msecs)03d | PERF | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("CONFKEEPER_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file(data_dir: Optional[Path] = None) -> Path:
    """Get log file path from environment."""
    default_dir = data_dir or Path.home() / ".confkeeper"
    path_str = os.environ.get("CONFKEEPER_LOG_FILE", str(default_dir / "confkeeper.log"))
    return Path(path_str)


def setup_logging(data_dir: Optional[Path] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (respects CONFKEEPER_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger writing to a sibling confkeeper-perf.log
    """
    log_level = get_log_level()
    log_file = get_log_file(data_dir)
    max_size_mb = int(os.environ.get("CONFKEEPER_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("CONFKEEPER_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(_MAIN_FORMAT, datefmt=_DATE_FORMAT)
    perf_format = logging.Formatter(_PERF_FORMAT, datefmt=_DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    perf_log_file = log_file.parent / "confkeeper-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    root_logger = logging.getLogger("confkeeper")
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Perf records go to their own file only
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.handlers.clear()
    perf_logger.addHandler(perf_handler)
    perf_logger.propagate = False

    root_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")
    perf_logger.info(f"Performance logging to: {perf_log_file}")


def timed(operation: str) -> Callable:
    """Decorator to log execution time of a store operation.

    The software id is taken from the first positional argument after
    self, or the `software_id` keyword.

    Usage:
        @timed("get_history")
        def get_history(self, software_id, limit=None):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            software_id = kwargs.get("software_id")
            if software_id is None and len(args) > 1:
                software_id = args[1]

            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(
                    f"{operation:20s} | {software_id or 'N/A':15s} | {elapsed:8.2f}ms | FAIL: {e}"
                )
                raise
            elapsed = (time.perf_counter() - start) * 1000
            perf_logger.info(
                f"{operation:20s} | {software_id or 'N/A':15s} | {elapsed:8.2f}ms | OK"
            )
            return result

        return wrapper

    return decorator
