"""Version store: the on-disk archive of configuration snapshots.

Handles:
- Per-software directory layout and blob read/write
- Index mutation (append, delete, retention bound)
- Dedup of unchanged consecutive auto-saves
- Auto-save retention cleanup
"""
import logging
import threading
import uuid
import weakref
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..errors import CorruptionError, NotFoundError, ParseError, StorageIOError
from ..utils.fs import read_json, remove_file, write_json
from ..utils.logging_config import timed
from .checksum import checksum
from .index import DEFAULT_MAX_VERSIONS, IndexRepository, VersionIndex, validate_software_id
from .models import ConfigVersion, VersionMetadata
from .retention import plan_cleanup

logger = logging.getLogger(__name__)


class VersionStore:
    """
    Manages versioned snapshots of configuration files.

    Directory structure:
        <base_path>/
        └── <software_id>/
            ├── index.json
            └── <version_id>.json   # {"content": ..., "parsed_content": ...}

    Every read-modify-write of a software's index runs under a lock for
    that software id, so concurrent saves within one process do not
    lose each other's entries.
    """

    def __init__(self, base_path: Path, default_max_versions: int = DEFAULT_MAX_VERSIONS):
        """
        Initialize the version store.

        Args:
            base_path: Root "versions" directory
            default_max_versions: Retention bound for software with no index yet
        """
        self.base_path = Path(base_path)
        self.indexes = IndexRepository(self.base_path, default_max_versions)
        # Entries vanish once no operation holds the lock
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Failed to create versions directory {self.base_path}: {e}") from e

        logger.debug(f"Version store initialized at {self.base_path}")

    @classmethod
    def from_settings(cls, settings) -> "VersionStore":
        return cls(settings.versions_dir, settings.default_max_versions)

    def _lock_for(self, software_id: str) -> threading.RLock:
        validate_software_id(software_id)
        with self._locks_guard:
            lock = self._locks.get(software_id)
            if lock is None:
                lock = self._locks[software_id] = threading.RLock()
            return lock

    # === Blob I/O ===

    def _blob_path(self, software_id: str, file_name: str) -> Path:
        return self.indexes.software_path(software_id) / file_name

    def _write_blob(
        self,
        software_id: str,
        file_name: str,
        content: str,
        parsed_content: Optional[Any],
    ) -> None:
        write_json(
            self._blob_path(software_id, file_name),
            {"content": content, "parsed_content": parsed_content},
        )

    def _load_blob(self, metadata: VersionMetadata) -> ConfigVersion:
        blob_path = self._blob_path(metadata.software_id, metadata.file_name)
        try:
            data = read_json(blob_path)
        except FileNotFoundError as e:
            raise CorruptionError(
                f"Version {metadata.id} of {metadata.software_id} is indexed "
                f"but {metadata.file_name} is missing"
            ) from e

        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            raise ParseError(f"Malformed version blob: {blob_path}")

        return ConfigVersion.from_metadata(metadata, data["content"], data.get("parsed_content"))

    def _discard_blobs(self, software_id: str, evicted: list[VersionMetadata]) -> None:
        """Best-effort removal of blobs already dropped from the index."""
        for metadata in evicted:
            try:
                if not remove_file(self._blob_path(software_id, metadata.file_name)):
                    logger.warning(
                        f"Evicted version {metadata.id} of {software_id} had no blob on disk"
                    )
            except StorageIOError as e:
                logger.warning(f"Failed to remove evicted blob {metadata.file_name}: {e}")

    def _apply_retention(self, software_id: str, index: VersionIndex) -> list[VersionMetadata]:
        kept, evicted = plan_cleanup(index.versions, index.max_versions)
        if evicted:
            index.versions = kept
            logger.info(
                f"Retention for {software_id}: evicting {len(evicted)} auto-save(s) "
                f"(max_versions={index.max_versions})"
            )
        return evicted

    def _new_id(self, index: VersionIndex) -> str:
        while True:
            version_id = str(uuid.uuid4())
            if index.find_by_id(version_id) is None:
                return version_id

    # === Public operations ===

    @timed("save_version")
    def save_version(
        self,
        software_id: str,
        content: str,
        parsed_content: Optional[Any] = None,
        note: Optional[str] = None,
        is_auto_save: bool = False,
    ) -> ConfigVersion:
        """
        Save a new version of a software's configuration.

        An auto-save whose content matches the most recent version is a
        no-op and returns that version's identity. Manual saves always
        append.

        Args:
            software_id: Software identifier
            content: Raw configuration text
            parsed_content: Optional structured form of the config. Must be a
                JSON value: it is stored as JSON, so tuples come back as
                lists and non-string dict keys come back as strings.
            note: Optional annotation
            is_auto_save: True for background saves (subject to retention)

        Returns:
            The saved (or matched) ConfigVersion

        Raises:
            ParseError: If parsed_content cannot be stored as JSON
            StorageIOError: If the blob or index cannot be written
        """
        with self._lock_for(software_id):
            index = self.indexes.load(software_id)
            content_checksum = checksum(content)

            last = index.last
            if is_auto_save and last is not None and last.checksum == content_checksum:
                logger.debug(f"Auto-save for {software_id} unchanged, reusing version {last.id}")
                return ConfigVersion.from_metadata(last, content, parsed_content)

            version_id = self._new_id(index)
            metadata = VersionMetadata(
                id=version_id,
                software_id=software_id,
                timestamp=datetime.now(timezone.utc),
                note=note,
                is_auto_save=is_auto_save,
                checksum=content_checksum,
                file_name=f"{version_id}.json",
            )

            # Blob first: the index never points at a file that was not written
            self._write_blob(software_id, metadata.file_name, content, parsed_content)
            index.append(metadata)

            evicted = self._apply_retention(software_id, index) if is_auto_save else []
            self.indexes.save(software_id, index)
            self._discard_blobs(software_id, evicted)

        kind = "auto-save" if is_auto_save else "manual save"
        logger.info(f"Saved version {version_id} for {software_id} ({kind})")
        return ConfigVersion.from_metadata(metadata, content, parsed_content)

    @timed("get_history")
    def get_history(self, software_id: str, limit: Optional[int] = None) -> list[ConfigVersion]:
        """
        Get the most recent versions, newest first.

        Args:
            software_id: Software identifier
            limit: Maximum versions to return (all if None)

        Raises:
            CorruptionError: If any selected version's blob is missing
        """
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")

        with self._lock_for(software_id):
            index = self.indexes.load(software_id)
            return [self._load_blob(m) for m in reversed(index.tail(limit))]

    @timed("get_version")
    def get_version(self, software_id: str, version_id: str) -> ConfigVersion:
        """
        Get a specific version.

        Raises:
            NotFoundError: If the version id is not in the index
            CorruptionError: If the version's blob is missing
        """
        with self._lock_for(software_id):
            index = self.indexes.load(software_id)
            metadata = index.find_by_id(version_id)
            if metadata is None:
                raise NotFoundError(f"Version {version_id} not found for {software_id}")
            return self._load_blob(metadata)

    @timed("delete_version")
    def delete_version(self, software_id: str, version_id: str) -> None:
        """Delete a version. Deleting an unknown id is a no-op."""
        with self._lock_for(software_id):
            index = self.indexes.load(software_id)
            metadata = index.remove_by_id(version_id)
            if metadata is None:
                logger.debug(f"Version {version_id} of {software_id} already absent")
                return

            self.indexes.save(software_id, index)
            remove_file(self._blob_path(software_id, metadata.file_name))

        logger.info(f"Deleted version {version_id} of {software_id}")

    @timed("set_max_versions")
    def set_max_versions(self, software_id: str, max_versions: int) -> None:
        """Set the auto-save retention bound, evicting immediately if lowered."""
        if not isinstance(max_versions, int) or isinstance(max_versions, bool) or max_versions < 0:
            raise ValueError(f"max_versions must be a non-negative integer, got {max_versions!r}")

        with self._lock_for(software_id):
            index = self.indexes.load(software_id)
            index.max_versions = max_versions
            evicted = self._apply_retention(software_id, index)
            self.indexes.save(software_id, index)
            self._discard_blobs(software_id, evicted)

        logger.info(f"Set max_versions={max_versions} for {software_id}")

    def get_max_versions(self, software_id: str) -> int:
        with self._lock_for(software_id):
            return self.indexes.load(software_id).max_versions

    def list_software(self) -> list[str]:
        """List software ids that have a persisted version index."""
        return sorted(
            p.name for p in self.base_path.iterdir()
            if p.is_dir() and self.indexes.exists(p.name)
        )
