"""
Domain models for RepairDesk.

These are pure data classes representing the core domain entities.
They are database-agnostic and used throughout the application.

Design Principles:
- Immutable (frozen=True); state changes go through services.reducer
- Row mapping lives next to the entity so every adapter defaults fields the same way
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..exceptions import InvalidTransitionError

NOT_AVAILABLE = "N/A"


class EquipmentStatus(str, Enum):
    """Repair workflow status. Pending -> Fixed only."""
    PENDING = "Pending"
    FIXED = "Fixed"


class Priority(str, Enum):
    """Job priority, chosen at the front desk."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class FinalCondition(str, Enum):
    """Condition reported by the technician when closing out work."""
    WORKING = "Working"
    PARTIALLY = "Partially"
    DEAD = "Dead"


class UserRole(str, Enum):
    """Dashboard roles."""
    ADMIN = "Admin"
    ATTACHEE = "Attachee"


class SyncAction(str, Enum):
    """Mutations that can be queued for replay."""
    ADD = "ADD"
    UPDATE = "UPDATE"
    FIX = "FIX"


# =============================================================================
# TIMESTAMPS
# =============================================================================

_FRACTION = re.compile(r"\.(\d+)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from Postgres/JS into an aware datetime, or None."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip().replace("Z", "+00:00")
        # Postgres trims trailing zeros from fractional seconds
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: datetime) -> str:
    """Serialize a datetime the way the browser client did (UTC, millisecond precision)."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def format_date_for_display(value: Any) -> str:
    """Format as M/D/YYYY, or N/A if missing or unparseable."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return NOT_AVAILABLE
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


# =============================================================================
# ENTITIES
# =============================================================================

@dataclass(frozen=True)
class TechnicianLog:
    """One entry in a job's repair history."""
    date: str
    technician: str
    action: str

    def to_dict(self) -> Dict[str, str]:
        return {"date": self.date, "technician": self.technician, "action": self.action}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TechnicianLog":
        return cls(
            date=str(data.get("date") or NOT_AVAILABLE),
            technician=str(data.get("technician") or NOT_AVAILABLE),
            action=str(data.get("action") or ""),
        )


@dataclass(frozen=True)
class EquipmentRecord:
    """A device logged for repair."""
    id: str
    job_card_no: str = NOT_AVAILABLE
    type: str = NOT_AVAILABLE
    serial_number: str = NOT_AVAILABLE
    office_number: str = NOT_AVAILABLE
    assigned_to: str = NOT_AVAILABLE
    logged_by: str = NOT_AVAILABLE
    received_date: str = field(default_factory=lambda: to_iso(utc_now()))
    fixed_date: Optional[str] = None
    status: EquipmentStatus = EquipmentStatus.PENDING
    priority: Priority = Priority.MEDIUM
    os_firmware: str = NOT_AVAILABLE
    notes: str = NOT_AVAILABLE
    technician_logs: Tuple[TechnicianLog, ...] = ()
    final_condition: Optional[FinalCondition] = None
    sr_number: str = NOT_AVAILABLE
    owner: str = NOT_AVAILABLE
    formatted_received_date: str = NOT_AVAILABLE
    formatted_fixed_date: str = NOT_AVAILABLE

    def __post_init__(self):
        if (self.status == EquipmentStatus.FIXED) != (self.fixed_date is not None):
            raise InvalidTransitionError(
                f"Record {self.id}: status {self.status.value} does not match fixed_date {self.fixed_date!r}"
            )

    @property
    def is_fixed(self) -> bool:
        return self.status == EquipmentStatus.FIXED

    def to_insert_row(self) -> Dict[str, Any]:
        """Row for `insert into equipment`."""
        return {
            "id": self.id,
            "job_card_no": self.job_card_no,
            "type": self.type,
            "serial_number": self.serial_number,
            "office_number": self.office_number,
            "assigned_to": self.assigned_to,
            "logged_by": self.logged_by,
            "status": self.status.value,
            "priority": self.priority.value,
            "os_firmware": self.os_firmware,
            "notes": self.notes,
            "technician_logs": [log.to_dict() for log in self.technician_logs],
            "final_condition": self.final_condition.value if self.final_condition else None,
            "received_date": self.received_date,
            "sr_number": self.sr_number,
            "owner": self.owner,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_insert_row()
        d["fixed_date"] = self.fixed_date
        d["formatted_received_date"] = self.formatted_received_date
        d["formatted_fixed_date"] = self.formatted_fixed_date
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EquipmentRecord":
        return record_from_row(data)


def _text(row: Dict[str, Any], key: str) -> str:
    value = row.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        return NOT_AVAILABLE
    return str(value)


def _enum(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def record_from_row(row: Dict[str, Any]) -> EquipmentRecord:
    """
    Map a raw `equipment` row into an EquipmentRecord, defaulting every field.

    Unparseable dates display as N/A while the underlying received_date
    falls back to "now" so ordering and overstay maths keep working.
    """
    raw_received = row.get("received_date")
    received = parse_timestamp(raw_received)
    received_date = to_iso(received) if received else to_iso(utc_now())
    if raw_received and received is None:
        formatted_received = NOT_AVAILABLE
    else:
        formatted_received = format_date_for_display(received_date)

    raw_fixed = row.get("fixed_date")
    fixed = parse_timestamp(raw_fixed)
    fixed_date: Optional[str] = to_iso(fixed) if fixed else (str(raw_fixed) if raw_fixed else None)

    status = _enum(EquipmentStatus, row.get("status"), EquipmentStatus.PENDING)
    if fixed_date is not None:
        status = EquipmentStatus.FIXED
    elif status == EquipmentStatus.FIXED:
        fallback = parse_timestamp(row.get("updated_at"))
        fixed_date = to_iso(fallback) if fallback else received_date

    logs = row.get("technician_logs")
    technician_logs = tuple(
        TechnicianLog.from_dict(entry) for entry in logs if isinstance(entry, dict)
    ) if isinstance(logs, list) else ()

    condition = row.get("final_condition")
    final_condition = _enum(FinalCondition, condition, None) if condition else None

    return EquipmentRecord(
        id=str(row.get("id") or uuid.uuid4()),
        job_card_no=_text(row, "job_card_no"),
        type=_text(row, "type"),
        serial_number=_text(row, "serial_number"),
        office_number=_text(row, "office_number"),
        assigned_to=_text(row, "assigned_to"),
        logged_by=_text(row, "logged_by"),
        received_date=received_date,
        fixed_date=fixed_date,
        status=status,
        priority=_enum(Priority, row.get("priority"), Priority.MEDIUM),
        os_firmware=_text(row, "os_firmware"),
        notes=_text(row, "notes"),
        technician_logs=technician_logs,
        final_condition=final_condition,
        sr_number=_text(row, "sr_number"),
        owner=_text(row, "owner"),
        formatted_received_date=formatted_received,
        formatted_fixed_date=format_date_for_display(fixed_date),
    )


@dataclass(frozen=True)
class SyncTask:
    """A mutation waiting to be replayed against the remote store."""
    id: str
    action: SyncAction
    payload: Dict[str, Any]
    queued_at: str = field(default_factory=lambda: to_iso(utc_now()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action.value,
            "payload": self.payload,
            "queued_at": self.queued_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncTask":
        return cls(
            id=str(data["id"]),
            action=SyncAction(data["action"]),
            payload=dict(data.get("payload") or {}),
            queued_at=str(data.get("queued_at") or ""),
        )


__all__ = [
    "NOT_AVAILABLE",
    "EquipmentStatus",
    "Priority",
    "FinalCondition",
    "UserRole",
    "SyncAction",
    "TechnicianLog",
    "EquipmentRecord",
    "SyncTask",
    "record_from_row",
    "parse_timestamp",
    "to_iso",
    "utc_now",
    "format_date_for_display",
]
