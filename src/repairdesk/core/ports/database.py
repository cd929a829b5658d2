"""
Remote Data Gateway Port

Abstract interface for the hosted `equipment` collection.
Implementations can be:
- SupabaseEquipmentGateway (production)
- In-memory fakes (tests)

Every method is a coroutine. Failures are reported by raising
TransientRemoteError or DuplicateKeyError; adapters must not swallow them.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class EquipmentGateway(ABC):
    """
    Abstract port for the remote equipment store.

    This is the only seam the reconciliation engine uses to reach the network.
    """

    @abstractmethod
    async def select_all(self) -> List[Dict[str, Any]]:
        """
        Fetch every row, newest first.

        Equivalent to `select * from equipment order by received_date desc`.
        """
        pass

    @abstractmethod
    async def insert(self, row: Dict[str, Any]) -> None:
        """
        Insert one row.

        Raises:
            DuplicateKeyError: a row with the same primary key already exists
            TransientRemoteError: any other failure
        """
        pass

    @abstractmethod
    async def update_job_details(
        self,
        record_id: str,
        technician_logs: List[Dict[str, Any]],
        final_condition: Optional[str],
    ) -> None:
        """Set technician_logs, final_condition and updated_at where id = record_id."""
        pass

    @abstractmethod
    async def update_status(self, record_id: str, status: str, fixed_date: Optional[str]) -> None:
        """Set status, fixed_date and updated_at where id = record_id."""
        pass

    @abstractmethod
    async def find_by_serial(self, serial_number: str) -> Optional[Dict[str, Any]]:
        """Get the first row with this serial number, or None."""
        pass

    async def close(self) -> None:
        """Release any connections held by the adapter."""
        return None
