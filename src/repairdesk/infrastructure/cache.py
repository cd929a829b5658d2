# src/repairdesk/infrastructure/cache.py
"""
Local Cache Store

Persisted snapshot of the last known-good equipment collection.
Used as the read fallback when the remote fetch fails.

Only the reconciliation engine writes here, and only after a successful
full fetch; optimistic state is never cached.

Usage:
    from .cache import LocalCacheStore

    cache = LocalCacheStore(store, namespace="repairdesk")
    cache.save(records)
    records = cache.load()   # None if nothing cached
"""

import json
import logging
from typing import List, Optional, Sequence

from ..core.exceptions import CacheCorruptedError
from ..core.models import EquipmentRecord
from ..core.ports.storage import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_KEY = "items_cache"


class LocalCacheStore:
    """Snapshot cache for the equipment collection."""

    def __init__(self, store: KeyValueStore, namespace: str = "repairdesk"):
        """
        Initialize cache.

        Args:
            store: Local key-value persistence
            namespace: Key namespace prefix
        """
        self._store = store
        self._key = f"{namespace}:{CACHE_KEY}"

    def save(self, records: Sequence[EquipmentRecord]) -> bool:
        """
        Replace the cached snapshot.

        Returns:
            True if the snapshot was written
        """
        try:
            self._store.set(self._key, json.dumps([r.to_dict() for r in records]))
            return True
        except Exception as e:
            logger.error(f"Cache save error: {e}")
            return False

    def load(self) -> Optional[List[EquipmentRecord]]:
        """
        Read the cached snapshot.

        Returns:
            Cached records, or None if nothing has been cached yet

        Raises:
            CacheCorruptedError: the stored value is not a list of records
        """
        raw = self._store.get(self._key)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheCorruptedError(f"Cached items are not valid JSON: {e}") from e

        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise CacheCorruptedError("Cached items are not a list of records")

        try:
            return [EquipmentRecord.from_dict(item) for item in data]
        except Exception as e:
            raise CacheCorruptedError(f"Cached record could not be rebuilt: {e}") from e

    def clear(self) -> None:
        """Drop the cached snapshot."""
        self._store.delete(self._key)
        logger.info("🗑️ Cache cleared")
