"""Version manager: the entry point used by the command layer.

Wraps VersionStore and adds the workflows that touch the live config
file as well as the history:
1. Saving an edited config (write live file, record manual version)
2. Backing up the current live config
3. Restoring a past version (write live file, record the restore)
"""
import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from ..config.catalog import SoftwareCatalog
from ..errors import NotFoundError, ParseError, StorageIOError
from .models import ConfigVersion
from .store import VersionStore

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_NOTE = "Manual backup"


class ConfigReader(ABC):
    """Reads a software's live configuration."""

    @abstractmethod
    def read(self, software_id: str) -> tuple[str, Optional[Any]]:
        """Return (raw_content, parsed_content)."""


class ConfigWriter(ABC):
    """Writes structured content to a software's live config in its native format."""

    @abstractmethod
    def write(self, software_id: str, parsed_content: Any) -> None:
        ...


class FileConfigReader(ConfigReader):
    """
    Reads raw config text from the paths listed in the software catalog.

    The first existing path for the running platform wins. A config file
    that does not exist yet reads as empty content. Parsing into a
    structured form is left to format-aware readers, so parsed_content
    is always None here.
    """

    def __init__(self, catalog: SoftwareCatalog):
        self.catalog = catalog

    def find_config_path(self, software_id: str) -> Optional[Path]:
        """First existing config path, or None if no config file exists yet.

        Raises:
            NotFoundError: Unknown software, or no config path on this platform
        """
        paths = self.catalog.get_config_paths(software_id)
        if not paths:
            raise NotFoundError(f"No config path for {software_id} on this platform")
        for path in paths:
            if path.exists():
                return path
        return None

    def config_exists(self, software_id: str) -> bool:
        return self.find_config_path(software_id) is not None

    def read(self, software_id: str) -> tuple[str, Optional[Any]]:
        path = self.find_config_path(software_id)
        if path is None:
            logger.debug(f"No config file for {software_id}, treating as empty")
            return "", None

        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Config {path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StorageIOError(f"Failed to read config {path}: {e}") from e
        return content, None


def write_live_config(path: Path, content: str) -> None:
    """Write raw config text, keeping a .backup copy of the previous file.

    The backup copy is best-effort; failing to make it does not stop the write.
    """
    path = Path(path)
    if path.exists():
        backup_path = path.with_name(path.name + ".backup")
        try:
            shutil.copy2(path, backup_path)
        except OSError as e:
            logger.warning(f"Failed to create backup {backup_path}: {e}")

    try:
        payload = content.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ParseError(f"Config content for {path} is not valid UTF-8 text: {e}") from e

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
    except OSError as e:
        raise StorageIOError(f"Failed to write config {path}: {e}") from e

    logger.info(f"Wrote config {path}")


class VersionManager:
    """
    Facade over VersionStore for callers.

    Usage:
        manager = VersionManager(VersionStore.from_settings(settings))
        version = manager.save_version("zsh", text, note="tweak prompt")
        manager.restore_version("zsh", version.id, writer, catalog)
    """

    def __init__(self, store: VersionStore):
        self.store = store

    # === Store pass-through ===

    def save_version(
        self,
        software_id: str,
        content: str,
        parsed_content: Optional[Any] = None,
        note: Optional[str] = None,
        is_auto_save: bool = False,
    ) -> ConfigVersion:
        return self.store.save_version(software_id, content, parsed_content, note, is_auto_save)

    def auto_save(
        self,
        software_id: str,
        content: str,
        parsed_content: Optional[Any] = None,
    ) -> ConfigVersion:
        """Record a background save; unchanged content is not duplicated."""
        return self.store.save_version(software_id, content, parsed_content, is_auto_save=True)

    def get_history(self, software_id: str, limit: Optional[int] = None) -> list[ConfigVersion]:
        return self.store.get_history(software_id, limit)

    def get_version(self, software_id: str, version_id: str) -> ConfigVersion:
        return self.store.get_version(software_id, version_id)

    def delete_version(self, software_id: str, version_id: str) -> None:
        self.store.delete_version(software_id, version_id)

    def set_max_versions(self, software_id: str, max_versions: int) -> None:
        self.store.set_max_versions(software_id, max_versions)

    def get_max_versions(self, software_id: str) -> int:
        return self.store.get_max_versions(software_id)

    # === Workflows ===

    def save_config(
        self,
        software_id: str,
        content: str,
        parsed_content: Any,
        writer: ConfigWriter,
        note: Optional[str] = None,
    ) -> ConfigVersion:
        """Write an edited config to disk and record it as a manual version."""
        writer.write(software_id, parsed_content)
        return self.store.save_version(software_id, content, parsed_content, note, is_auto_save=False)

    def create_backup(
        self,
        software_id: str,
        reader: ConfigReader,
        note: Optional[str] = None,
    ) -> ConfigVersion:
        """Snapshot the current live config as a manual version."""
        content, parsed_content = reader.read(software_id)
        version = self.store.save_version(
            software_id,
            content,
            parsed_content,
            note or DEFAULT_BACKUP_NOTE,
            is_auto_save=False,
        )
        logger.info(f"Created backup {version.id} for {software_id}")
        return version

    def restore_version(
        self,
        software_id: str,
        version_id: str,
        writer: ConfigWriter,
        catalog: SoftwareCatalog,
    ) -> ConfigVersion:
        """
        Restore a past version to the live config.

        Structured content goes through the writer in the software's own
        format; plain versions are written verbatim to the primary config
        path. The restore is then recorded as a manual save, so it is
        itself recoverable and never evicted by auto-save retention.

        Returns:
            The new version recording the restore

        Raises:
            NotFoundError: Unknown software, version, or no config path
        """
        catalog.get(software_id)
        version = self.store.get_version(software_id, version_id)

        if version.parsed_content is not None:
            writer.write(software_id, version.parsed_content)
        else:
            write_live_config(catalog.primary_config_path(software_id), version.content)

        restored = self.store.save_version(
            software_id,
            version.content,
            version.parsed_content,
            f"Restored from version {version_id}",
            is_auto_save=False,
        )
        logger.info(f"Restored {software_id} to version {version_id} (recorded as {restored.id})")
        return restored
