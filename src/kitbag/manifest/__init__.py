"""
Consumer manifest handling.

- merge / merge_file / sync_one: Format-preserving writes
- read_active_features / installed_packs: Pack bookkeeping
- check_status: Drift reports
"""

from kitbag.manifest.merge import LibraryChange, MergeResult, merge, merge_file, sync_one
from kitbag.manifest.status import (
    check_status,
    installed_packs,
    read_active_features,
)

__all__ = [
    "LibraryChange",
    "MergeResult",
    "check_status",
    "installed_packs",
    "merge",
    "merge_file",
    "read_active_features",
    "sync_one",
]
