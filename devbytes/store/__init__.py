"""SQLite cache store for the playlist, refresh history and schedules.

This module provides:
- Atomic replace-all of the cached playlist with snapshot streams
- Refresh attempt history
- Persisted schedule state for restarts
"""

from devbytes.store.errors import (
    CacheStoreError,
    MigrationError,
    StorageUnavailableError,
    StoreConnectionError,
)
from devbytes.store.metrics import StoreMetrics
from devbytes.store.models import CacheSnapshot, Item, RefreshRecord, ScheduleRecord
from devbytes.store.registry import close_store, get_store
from devbytes.store.store import CacheStore
from devbytes.store.subscription import SnapshotSubscription


__all__ = [
    # Errors
    "CacheStoreError",
    "MigrationError",
    "StorageUnavailableError",
    "StoreConnectionError",
    # Metrics
    "StoreMetrics",
    # Models
    "CacheSnapshot",
    "Item",
    "RefreshRecord",
    "ScheduleRecord",
    # Store
    "CacheStore",
    "SnapshotSubscription",
    "close_store",
    "get_store",
]
