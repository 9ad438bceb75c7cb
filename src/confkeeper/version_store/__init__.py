"""Version store package for configuration history.

This package provides:
- VersionStore: File-backed snapshot archive with retention
- VersionManager: Facade plus save/backup/restore workflows
- ConfigVersion/VersionMetadata: Snapshot records
- VersionIndex: Per-software ordered metadata and retention bound
- plan_cleanup: Auto-save retention as a pure function

Directory structure managed:
    ~/.confkeeper/
    ├── versions/
    │   └── <software_id>/
    │       ├── index.json
    │       └── <version_id>.json
    └── preferences.json
"""

from .checksum import checksum
from .models import ConfigVersion, VersionMetadata
from .index import VersionIndex, IndexRepository, DEFAULT_MAX_VERSIONS
from .retention import plan_cleanup
from .store import VersionStore
from .manager import (
    VersionManager,
    ConfigReader,
    ConfigWriter,
    FileConfigReader,
    write_live_config,
)

__all__ = [
    "checksum",
    "ConfigVersion",
    "VersionMetadata",
    "VersionIndex",
    "IndexRepository",
    "DEFAULT_MAX_VERSIONS",
    "plan_cleanup",
    "VersionStore",
    "VersionManager",
    "ConfigReader",
    "ConfigWriter",
    "FileConfigReader",
    "write_live_config",
]
