"""Retention policy for automatic saves.

Only auto-saves count against max_versions. Manual saves (edits, backups,
restores) are always kept.
"""
from .models import VersionMetadata


def plan_cleanup(
    versions: list[VersionMetadata],
    max_versions: int,
) -> tuple[list[VersionMetadata], list[VersionMetadata]]:
    """Split versions into (kept, evicted).

    Keeps every manual save and the newest `max_versions` auto-saves,
    preserving the original chronological order in both lists.
    """
    auto_saves = [v for v in versions if v.is_auto_save]
    excess = len(auto_saves) - max_versions
    if excess <= 0:
        return list(versions), []

    evicted_ids = {v.id for v in auto_saves[:excess]}
    kept = [v for v in versions if v.id not in evicted_ids]
    evicted = [v for v in versions if v.id in evicted_ids]
    return kept, evicted
