# src/repairdesk/infrastructure/__init__.py
"""
Infrastructure adapters: Supabase gateway, SQLite local store, cache,
sync queue and connectivity probing.
"""

from .cache import LocalCacheStore
from .connectivity import ConnectivityMonitor, HttpProbe
from .local_store import SQLiteKeyValueStore
from .sync_queue import ApplyOutcome, DrainResult, SyncQueue

__all__ = [
    "LocalCacheStore",
    "ConnectivityMonitor",
    "HttpProbe",
    "SQLiteKeyValueStore",
    "ApplyOutcome",
    "DrainResult",
    "SyncQueue",
]
