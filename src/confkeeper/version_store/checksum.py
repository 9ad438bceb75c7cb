"""Content checksum used to detect unchanged auto-saves."""
import hashlib

CHECKSUM_LENGTH = 16


def checksum(content: str) -> str:
    """Return a fixed-width hex digest of content.

    Only used to compare against the previous save, so 64 bits of
    sha256 is plenty.
    """
    data = content.encode("utf-8", "surrogatepass")
    return hashlib.sha256(data).hexdigest()[:CHECKSUM_LENGTH]
