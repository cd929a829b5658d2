"""
Local Storage Port Interface

Abstract interface for the scoped key-value store that survives restarts.
It holds the serialized sync queue and the cached equipment snapshot.
Implementations can be:
- SQLiteKeyValueStore (production and tests, ":memory:" supported)
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """
    Abstract port for local persistence.

    Values are opaque strings; callers own the serialization format.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Args:
            key: Storage key

        Returns:
            Stored string, or None if the key is absent
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Write a value, replacing any previous one.

        Args:
            key: Storage key
            value: Serialized value
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    def close(self) -> None:
        """Release the underlying handle."""
        return None
