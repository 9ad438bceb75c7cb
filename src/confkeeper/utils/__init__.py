"""Utility modules for file I/O and logging."""
from .fs import atomic_write_text, read_json, write_json, remove_file
from .logging_config import setup_logging, timed, perf_logger

__all__ = [
    "atomic_write_text",
    "read_json",
    "write_json",
    "remove_file",
    "setup_logging",
    "timed",
    "perf_logger",
]
