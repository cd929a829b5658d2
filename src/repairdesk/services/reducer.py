# src/repairdesk/services/reducer.py
"""
Optimistic state transitions.

`reduce(items, action)` is a pure function: it never touches the network or
local storage, and never mutates its input. The reconciliation engine calls
it for the optimistic-apply step and when replacing state after a fetch.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Sequence, Tuple, Union

from ..core.exceptions import InvalidTransitionError, RecordNotFoundError
from ..core.models import (
    EquipmentRecord,
    EquipmentStatus,
    FinalCondition,
    TechnicianLog,
    format_date_for_display,
)

Items = Tuple[EquipmentRecord, ...]


@dataclass(frozen=True)
class AddRecord:
    record: EquipmentRecord


@dataclass(frozen=True)
class UpdateJobDetails:
    record_id: str
    technician_logs: Tuple[TechnicianLog, ...]
    final_condition: Optional[FinalCondition]


@dataclass(frozen=True)
class MarkFixed:
    record_id: str
    fixed_date: str


@dataclass(frozen=True)
class ReplaceAll:
    records: Tuple[EquipmentRecord, ...]


Action = Union[AddRecord, UpdateJobDetails, MarkFixed, ReplaceAll]


def next_job_card_no(item_count: int, now: datetime, prefix: str = "COMETZ") -> str:
    """
    Job card number from the current item count, e.g. COMETZ26/00042.

    Not unique across concurrent sessions: two desks creating jobs from the
    same snapshot get the same number.
    """
    return f"{prefix}{now.year % 100:02d}/{item_count + 1:05d}"


def find_record(items: Sequence[EquipmentRecord], record_id: str) -> EquipmentRecord:
    for record in items:
        if record.id == record_id:
            return record
    raise RecordNotFoundError(f"Unknown equipment record: {record_id}")


def _replace_record(items: Sequence[EquipmentRecord], updated: EquipmentRecord) -> Items:
    return tuple(updated if r.id == updated.id else r for r in items)


def reduce(items: Sequence[EquipmentRecord], action: Action) -> Items:
    """Return the new item collection after applying one action."""
    if isinstance(action, ReplaceAll):
        return tuple(action.records)

    if isinstance(action, AddRecord):
        if any(r.id == action.record.id for r in items):
            return tuple(items)
        # newest first, matching `order by received_date desc`
        return (action.record,) + tuple(items)

    if isinstance(action, UpdateJobDetails):
        current = find_record(items, action.record_id)
        existing = current.technician_logs
        if tuple(action.technician_logs[:len(existing)]) != existing:
            raise InvalidTransitionError(
                f"Technician logs for {action.record_id} are append-only"
            )
        updated = replace(
            current,
            technician_logs=tuple(action.technician_logs),
            final_condition=action.final_condition,
        )
        return _replace_record(items, updated)

    if isinstance(action, MarkFixed):
        current = find_record(items, action.record_id)
        if current.status == EquipmentStatus.FIXED:
            return tuple(items)
        updated = replace(
            current,
            status=EquipmentStatus.FIXED,
            fixed_date=action.fixed_date,
            formatted_fixed_date=format_date_for_display(action.fixed_date),
        )
        return _replace_record(items, updated)

    raise TypeError(f"Unsupported action: {action!r}")
