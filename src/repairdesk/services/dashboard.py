# src/repairdesk/services/dashboard.py
"""
Read-only views over the equipment collection: stats, filter tabs and
overstay alerts.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..core.models import EquipmentRecord, EquipmentStatus, parse_timestamp, utc_now

OVERSTAY_THRESHOLD_DAYS = 2


class DashboardTab(str, Enum):
    ALL = "All"
    RECEIVED = "Received"
    FIXED = "Fixed"


def days_in_workshop(received_date: Any, now: Optional[datetime] = None) -> int:
    """Whole days since the device was received; 0 if the date is unusable."""
    received = parse_timestamp(received_date)
    if received is None:
        return 0
    now = now or utc_now()
    return max(0, (now - received).days)


def overstayed_items(
    items: Sequence[EquipmentRecord],
    now: Optional[datetime] = None,
    threshold_days: int = OVERSTAY_THRESHOLD_DAYS,
) -> List[Dict[str, Any]]:
    """Pending items that have been in the workshop for threshold_days or more."""
    now = now or utc_now()
    alerts = []
    for item in items:
        if item.status != EquipmentStatus.PENDING:
            continue
        days = days_in_workshop(item.received_date, now)
        if days >= threshold_days:
            alerts.append({"item": item.to_dict(), "days": days})
    return alerts


def dashboard_stats(items: Sequence[EquipmentRecord]) -> Dict[str, int]:
    received = sum(1 for item in items if item.status == EquipmentStatus.PENDING)
    fixed = sum(1 for item in items if item.status == EquipmentStatus.FIXED)
    return {"all": len(items), "received": received, "fixed": fixed}


def equipment_categories(items: Sequence[EquipmentRecord]) -> List[str]:
    """Distinct equipment types present in the collection, for the type filter."""
    return sorted({item.type for item in items})


def filter_items(
    items: Sequence[EquipmentRecord],
    tab: DashboardTab = DashboardTab.ALL,
    equipment_type: Optional[str] = None,
    query: Optional[str] = None,
) -> List[EquipmentRecord]:
    """
    Apply the dashboard tab, the type filter and the free-text search.

    The search matches serial number, office number, job card number and
    assignee, case-insensitively.
    """
    tab = DashboardTab(tab)
    needle = (query or "").strip().lower()

    result = []
    for item in items:
        if tab is DashboardTab.RECEIVED and item.status != EquipmentStatus.PENDING:
            continue
        if tab is DashboardTab.FIXED and item.status != EquipmentStatus.FIXED:
            continue
        if equipment_type and equipment_type != "All" and item.type != equipment_type:
            continue
        if needle:
            haystack = (item.serial_number, item.office_number, item.job_card_no, item.assigned_to)
            if not any(needle in value.lower() for value in haystack):
                continue
        result.append(item)
    return result
