"""
Ports (abstract interfaces) for RepairDesk.

Usage:
    from repairdesk.core.ports import EquipmentGateway, KeyValueStore
"""

from .database import EquipmentGateway
from .storage import KeyValueStore

__all__ = [
    "EquipmentGateway",
    "KeyValueStore",
]
