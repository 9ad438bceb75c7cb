"""Runtime settings resolved from the environment.

Environment Variables:
    CONFKEEPER_HOME: Data directory (default: ~/.confkeeper)
    CONFKEEPER_MAX_VERSIONS: Default auto-save retention bound (default: 20)
    CONFKEEPER_CATALOG: Path to software.yaml (default: searched, see below)
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..version_store.index import DEFAULT_MAX_VERSIONS

DEFAULT_DATA_DIR = Path.home() / ".confkeeper"


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def find_catalog(data_dir: Path) -> Optional[Path]:
    """Find software.yaml in the usual places."""
    env_path = os.environ.get("CONFKEEPER_CATALOG")
    if env_path:
        return Path(env_path).expanduser()

    search_paths = [
        Path.cwd() / "software.yaml",
        data_dir / "software.yaml",
        Path.home() / ".config" / "confkeeper" / "software.yaml",
    ]
    for path in search_paths:
        if path.exists():
            return path
    return None


@dataclass
class Settings:
    """Resolved once at startup and passed to the stores explicitly."""
    data_dir: Path = DEFAULT_DATA_DIR
    default_max_versions: int = DEFAULT_MAX_VERSIONS
    catalog_path: Optional[Path] = None

    @property
    def versions_dir(self) -> Path:
        return self.data_dir / "versions"

    @property
    def preferences_file(self) -> Path:
        return self.data_dir / "preferences.json"

    @classmethod
    def from_env(cls) -> "Settings":
        data_dir = Path(os.environ.get("CONFKEEPER_HOME", str(DEFAULT_DATA_DIR))).expanduser()
        return cls(
            data_dir=data_dir,
            default_max_versions=_int_from_env("CONFKEEPER_MAX_VERSIONS", DEFAULT_MAX_VERSIONS),
            catalog_path=find_catalog(data_dir),
        )
