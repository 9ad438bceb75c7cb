"""Per-software editor preferences.

All preferences live in one JSON array, looked up by software_id.
"""
import logging
import threading
from dataclasses import dataclass, asdict, fields
from pathlib import Path

from ..errors import ParseError
from ..utils.fs import read_json, write_json

logger = logging.getLogger(__name__)


@dataclass
class SoftwarePreferences:
    """UI preferences for one software."""
    software_id: str
    preferred_editor: str = "form"  # form, source
    show_advanced: bool = False
    auto_save: bool = True
    auto_backup: bool = True
    backup_count: int = 20

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SoftwarePreferences":
        if not isinstance(data, dict) or "software_id" not in data:
            raise ParseError(f"Invalid preferences record: {data!r}")
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class PreferencesStore:
    """Reads and upserts SoftwarePreferences in a single JSON file."""

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> "PreferencesStore":
        return cls(settings.preferences_file)

    def _load_all(self) -> list[SoftwarePreferences]:
        try:
            data = read_json(self.file_path)
        except FileNotFoundError:
            return []
        if not isinstance(data, list):
            raise ParseError(f"Preferences file must hold a JSON array: {self.file_path}")
        return [SoftwarePreferences.from_dict(item) for item in data]

    def _save_all(self, preferences: list[SoftwarePreferences]) -> None:
        write_json(self.file_path, [p.to_dict() for p in preferences])

    def get_preferences(self, software_id: str) -> SoftwarePreferences:
        """Get preferences, falling back to defaults for unknown software."""
        for prefs in self._load_all():
            if prefs.software_id == software_id:
                return prefs
        return SoftwarePreferences(software_id=software_id)

    def save_preferences(self, preferences: SoftwarePreferences) -> None:
        """Insert or replace the record for preferences.software_id."""
        with self._lock:
            all_prefs = self._load_all()
            for pos, existing in enumerate(all_prefs):
                if existing.software_id == preferences.software_id:
                    all_prefs[pos] = preferences
                    break
            else:
                all_prefs.append(preferences)
            self._save_all(all_prefs)

        logger.info(f"Saved preferences for {preferences.software_id}")
