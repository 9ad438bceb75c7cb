"""Per-software preferences storage."""
from .store import PreferencesStore, SoftwarePreferences

__all__ = ["PreferencesStore", "SoftwarePreferences"]
