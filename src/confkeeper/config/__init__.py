"""Runtime settings and the software catalog."""
from .settings import Settings, DEFAULT_DATA_DIR
from .catalog import SoftwareCatalog, SoftwareEntry, current_platform, expand_path

__all__ = [
    "Settings",
    "DEFAULT_DATA_DIR",
    "SoftwareCatalog",
    "SoftwareEntry",
    "current_platform",
    "expand_path",
]
