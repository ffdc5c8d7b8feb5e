"""
Snapshot model, workload computation and snapshot sync.
"""

from .models import StoreSnapshot, build_locale_detail
from .sync import SnapshotSyncReport, SnapshotSyncService, StoreFetchOutcome, fetch_snapshots
from .workload import HIGH_LOAD_THRESHOLD, LocaleWorkload, build_locale_workload, compute_workload

__all__ = [
    "HIGH_LOAD_THRESHOLD",
    "LocaleWorkload",
    "SnapshotSyncReport",
    "SnapshotSyncService",
    "StoreFetchOutcome",
    "StoreSnapshot",
    "build_locale_detail",
    "build_locale_workload",
    "compute_workload",
    "fetch_snapshots",
]
