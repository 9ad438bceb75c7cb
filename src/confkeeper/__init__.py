"""confkeeper: versioned history for desktop software configuration files."""
from .config import Settings, SoftwareCatalog
from .errors import (
    StorageError,
    NotFoundError,
    StorageIOError,
    ParseError,
    CorruptionError,
)
from .preferences import PreferencesStore, SoftwarePreferences
from .version_store import ConfigVersion, VersionManager, VersionStore

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "SoftwareCatalog",
    "StorageError",
    "NotFoundError",
    "StorageIOError",
    "ParseError",
    "CorruptionError",
    "PreferencesStore",
    "SoftwarePreferences",
    "ConfigVersion",
    "VersionManager",
    "VersionStore",
]
