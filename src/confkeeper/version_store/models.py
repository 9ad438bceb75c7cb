"""Data records for versioned configuration snapshots."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..errors import ParseError


def _parse_timestamp(value: Any) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Invalid timestamp: {value!r}") from e


@dataclass
class VersionMetadata:
    """Lightweight index entry describing one stored snapshot."""
    id: str
    software_id: str
    timestamp: datetime
    note: Optional[str]
    is_auto_save: bool
    checksum: str
    file_name: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "software_id": self.software_id,
            "timestamp": self.timestamp.isoformat(),
            "note": self.note,
            "is_auto_save": self.is_auto_save,
            "checksum": self.checksum,
            "file_name": self.file_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VersionMetadata":
        """Build from a persisted index entry.

        Raises:
            ParseError: If a required field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ParseError(f"Index entry must be an object, got {type(data).__name__}")
        try:
            return cls(
                id=str(data["id"]),
                software_id=str(data["software_id"]),
                timestamp=_parse_timestamp(data["timestamp"]),
                note=data.get("note"),
                is_auto_save=bool(data["is_auto_save"]),
                checksum=str(data["checksum"]),
                file_name=str(data["file_name"]),
            )
        except KeyError as e:
            raise ParseError(f"Index entry missing field: {e.args[0]}") from e


@dataclass
class ConfigVersion:
    """A configuration snapshot: stored content merged with its metadata."""
    id: str
    software_id: str
    content: str
    parsed_content: Optional[Any]
    timestamp: datetime
    note: Optional[str] = None
    is_auto_save: bool = False
    checksum: Optional[str] = None

    @classmethod
    def from_metadata(
        cls,
        metadata: VersionMetadata,
        content: str,
        parsed_content: Optional[Any],
    ) -> "ConfigVersion":
        return cls(
            id=metadata.id,
            software_id=metadata.software_id,
            content=content,
            parsed_content=parsed_content,
            timestamp=metadata.timestamp,
            note=metadata.note,
            is_auto_save=metadata.is_auto_save,
            checksum=metadata.checksum,
        )

    def to_dict(self) -> dict:
        """Serialize for the command layer (timestamp exposed as created_at)."""
        return {
            "id": self.id,
            "software_id": self.software_id,
            "content": self.content,
            "parsed_content": self.parsed_content,
            "created_at": self.timestamp.isoformat(),
            "note": self.note,
            "is_auto_save": self.is_auto_save,
            "checksum": self.checksum,
        }
