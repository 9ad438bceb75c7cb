"""Per-software version index.

Each software id gets its own directory under the versions root:

    versions/
    └── <software_id>/
        ├── index.json        # ordered metadata + retention bound
        └── <version_id>.json # one blob per snapshot
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..errors import ParseError
from ..utils.fs import read_json, write_json
from .models import VersionMetadata

logger = logging.getLogger(__name__)

DEFAULT_MAX_VERSIONS = 20
INDEX_FILE_NAME = "index.json"


@dataclass
class VersionIndex:
    """Ordered (oldest first) version metadata plus the auto-save bound."""
    versions: list[VersionMetadata] = field(default_factory=list)
    max_versions: int = DEFAULT_MAX_VERSIONS

    def __len__(self) -> int:
        return len(self.versions)

    @property
    def last(self) -> Optional[VersionMetadata]:
        """Most recently appended entry, or None if empty."""
        return self.versions[-1] if self.versions else None

    def append(self, metadata: VersionMetadata) -> None:
        if self.find_by_id(metadata.id) is not None:
            raise ValueError(f"Duplicate version id: {metadata.id}")
        self.versions.append(metadata)

    def find_by_id(self, version_id: str) -> Optional[VersionMetadata]:
        for metadata in self.versions:
            if metadata.id == version_id:
                return metadata
        return None

    def remove_by_id(self, version_id: str) -> Optional[VersionMetadata]:
        """Remove an entry by id. Returns the removed entry, if any."""
        for pos, metadata in enumerate(self.versions):
            if metadata.id == version_id:
                return self.versions.pop(pos)
        return None

    def tail(self, limit: Optional[int] = None) -> list[VersionMetadata]:
        """The last `limit` entries (all if None), oldest first."""
        if limit is None:
            return list(self.versions)
        if limit == 0:
            return []
        return self.versions[-limit:]

    def to_dict(self) -> dict:
        return {
            "versions": [v.to_dict() for v in self.versions],
            "max_versions": self.max_versions,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VersionIndex":
        if not isinstance(data, dict):
            raise ParseError("Version index must be a JSON object")

        versions = data.get("versions", [])
        if not isinstance(versions, list):
            raise ParseError("Version index 'versions' must be a list")

        max_versions = data.get("max_versions", DEFAULT_MAX_VERSIONS)
        if not isinstance(max_versions, int) or isinstance(max_versions, bool) or max_versions < 0:
            raise ParseError(f"Invalid max_versions: {max_versions!r}")

        index = cls(max_versions=max_versions)
        for raw in versions:
            metadata = VersionMetadata.from_dict(raw)
            if index.find_by_id(metadata.id) is not None:
                raise ParseError(f"Duplicate version id in index: {metadata.id}")
            index.versions.append(metadata)
        return index


def validate_software_id(software_id: str) -> str:
    """Reject ids that could escape their per-software directory."""
    if not software_id or not isinstance(software_id, str):
        raise ValueError("software_id must be a non-empty string")
    if software_id in (".", "..") or "/" in software_id or "\\" in software_id:
        raise ValueError(f"Invalid software_id: {software_id!r}")
    return software_id


class IndexRepository:
    """Loads and persists VersionIndex records under a versions root."""

    def __init__(self, base_path: Path, default_max_versions: int = DEFAULT_MAX_VERSIONS):
        self.base_path = Path(base_path)
        self.default_max_versions = default_max_versions

    def software_path(self, software_id: str) -> Path:
        return self.base_path / validate_software_id(software_id)

    def index_path(self, software_id: str) -> Path:
        return self.software_path(software_id) / INDEX_FILE_NAME

    def exists(self, software_id: str) -> bool:
        return self.index_path(software_id).exists()

    def load(self, software_id: str) -> VersionIndex:
        """Load the index, or a fresh default if none has been saved yet."""
        index_path = self.index_path(software_id)
        try:
            data = read_json(index_path)
        except FileNotFoundError:
            logger.debug(f"No index for {software_id}, using defaults")
            return VersionIndex(max_versions=self.default_max_versions)
        return VersionIndex.from_dict(data)

    def save(self, software_id: str, index: VersionIndex) -> None:
        write_json(self.index_path(software_id), index.to_dict())
