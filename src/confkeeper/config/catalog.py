"""Software catalog loaded from YAML.

Example software.yaml:

```yaml
defaults:
  format: plain

software:
  zsh:
    name: Zsh
    config_paths:
      linux: ["~/.zshrc"]
      darwin: ["~/.zshrc"]
  vscode:
    name: Visual Studio Code
    format: json
    config_paths:
      linux: ["~/.config/Code/User/settings.json"]
      darwin: ["~/Library/Application Support/Code/User/settings.json"]
      win32: ["~/AppData/Roaming/Code/User/settings.json"]
```
"""
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from ..errors import NotFoundError, ParseError

logger = logging.getLogger(__name__)

PLATFORMS = ("linux", "darwin", "win32")


def current_platform() -> Optional[str]:
    """Catalog platform key for the running OS, or None if unsupported."""
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform == "win32":
        return "win32"
    return None


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in a catalog path."""
    return Path(os.path.expandvars(os.path.expanduser(path)))


@dataclass
class SoftwareEntry:
    """One managed piece of software."""
    id: str
    name: str
    format: str = "plain"
    config_paths: dict[str, list[str]] = field(default_factory=dict)
    description: str = ""


class SoftwareCatalog:
    """Static list of software whose configs can be versioned."""

    def __init__(self, entries: Optional[dict[str, SoftwareEntry]] = None):
        self._entries: dict[str, SoftwareEntry] = dict(entries or {})

    @classmethod
    def from_yaml(cls, text: str) -> "SoftwareCatalog":
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ParseError(f"Invalid software catalog: {e}") from e

        if not isinstance(data, dict):
            raise ParseError("Software catalog must be a mapping")

        defaults = data.get("defaults", {}) or {}
        entries = {}
        for software_id, raw in (data.get("software", {}) or {}).items():
            software_id = str(software_id)
            raw = {**defaults, **(raw or {})}

            config_paths = raw.get("config_paths", {}) or {}
            for platform in config_paths:
                if platform not in PLATFORMS:
                    logger.warning(f"Software '{software_id}' lists unknown platform: {platform}")

            entries[software_id] = SoftwareEntry(
                id=software_id,
                name=raw.get("name", software_id),
                format=raw.get("format", "plain"),
                config_paths={k: list(v or []) for k, v in config_paths.items()},
                description=raw.get("description", ""),
            )
        return cls(entries)

    @classmethod
    def load(cls, path: Path) -> "SoftwareCatalog":
        """Load the catalog from a YAML file."""
        with open(path, encoding="utf-8") as f:
            catalog = cls.from_yaml(f.read())
        logger.debug(f"Loaded {len(catalog.list_software())} software entries from {path}")
        return catalog

    def list_software(self) -> list[SoftwareEntry]:
        return list(self._entries.values())

    def find(self, software_id: str) -> Optional[SoftwareEntry]:
        return self._entries.get(software_id)

    def get(self, software_id: str) -> SoftwareEntry:
        entry = self.find(software_id)
        if entry is None:
            raise NotFoundError(f"Software {software_id} not found")
        return entry

    def get_config_paths(self, software_id: str, platform: Optional[str] = None) -> list[Path]:
        """Expanded config paths for a platform (defaults to the running one)."""
        entry = self.get(software_id)
        platform = platform or current_platform()
        return [expand_path(p) for p in entry.config_paths.get(platform or "", [])]

    def primary_config_path(self, software_id: str, platform: Optional[str] = None) -> Path:
        """First config path for the platform.

        Raises:
            NotFoundError: If the software has no path on this platform
        """
        paths = self.get_config_paths(software_id, platform)
        if not paths:
            raise NotFoundError(f"No config path for {software_id} on this platform")
        return paths[0]
