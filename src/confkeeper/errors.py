"""Error types raised by the storage layer.

All storage failures derive from StorageError so callers (the command
layer) can catch one type and still tell the kinds apart.
"""


class StorageError(Exception):
    """Base class for storage errors."""


class NotFoundError(StorageError):
    """Entity, version id or config path does not exist."""


class StorageIOError(StorageError):
    """Filesystem read, write or directory creation failed."""


class ParseError(StorageError):
    """Persisted index, blob or config content is malformed."""


class CorruptionError(StorageError):
    """Index references a snapshot blob that is missing on disk."""
