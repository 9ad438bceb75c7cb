"""Filesystem helpers shared by the version and preferences stores.

Writes go through a temp file in the target directory followed by
os.replace, so readers never see a half-written record.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from ..errors import ParseError, StorageIOError

logger = logging.getLogger(__name__)

# os.replace can fail transiently on Windows while another process holds
# the destination open
REPLACE_ATTEMPTS = 5


@retry(
    stop=stop_after_attempt(REPLACE_ATTEMPTS),
    wait=wait_exponential(multiplier=0.05, min=0.05, max=1),
    retry=retry_if_exception_type(PermissionError),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
def _replace(src: str, dst: Path) -> None:
    os.replace(src, dst)


def atomic_write_text(path: Path, text: str) -> None:
    """Write text to path atomically.

    Raises:
        ParseError: If text cannot be encoded as UTF-8
        StorageIOError: If the directory or file cannot be written
    """
    path = Path(path)
    try:
        payload = text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ParseError(f"Content for {path} is not valid UTF-8 text: {e}") from e

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise StorageIOError(f"Failed to prepare {path}: {e}") from e

    replaced = False
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        _replace(tmp_name, path)
        replaced = True
    except OSError as e:
        raise StorageIOError(f"Failed to write {path}: {e}") from e
    finally:
        if not replaced:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass


def write_json(path: Path, data: Any) -> None:
    """Serialize data as indented JSON and write it atomically.

    Non-ASCII characters are escaped, so lone surrogates round-trip.

    Raises:
        ParseError: If data is not a JSON value
    """
    try:
        text = json.dumps(data, indent=2)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Cannot serialize data for {path}: {e}") from e
    atomic_write_text(path, text)


def read_json(path: Path) -> Any:
    """Read and decode a JSON file.

    Raises:
        FileNotFoundError: If path does not exist (callers decide what absence means)
        StorageIOError: On any other read failure
        ParseError: If the file is not valid JSON
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as e:
        raise StorageIOError(f"Failed to read {path}: {e}") from e

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed JSON in {path}: {e}") from e


def remove_file(path: Path) -> bool:
    """Delete a file, treating an already-absent file as success.

    Returns:
        True if a file was removed, False if it was already gone

    Raises:
        StorageIOError: If the file exists but cannot be removed
    """
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StorageIOError(f"Failed to delete {path}: {e}") from e
