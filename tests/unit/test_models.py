# tests/unit/test_models.py
"""
Unit tests for domain models.

Tests row mapping defaults, timestamp handling and the status/fixed_date
invariant without external dependencies.
"""

from datetime import datetime, timezone

import pytest

from repairdesk.core.exceptions import InvalidTransitionError
from repairdesk.core.models import (
    NOT_AVAILABLE,
    EquipmentRecord,
    EquipmentStatus,
    FinalCondition,
    Priority,
    SyncAction,
    SyncTask,
    TechnicianLog,
    format_date_for_display,
    parse_timestamp,
    record_from_row,
    to_iso,
)


class TestTimestamps:

    def test_to_iso_uses_millisecond_utc(self):
        value = datetime(2026, 3, 5, 9, 30, 15, 123456, tzinfo=timezone.utc)

        assert to_iso(value) == "2026-03-05T09:30:15.123Z"

    def test_parse_postgres_timestamp_with_short_fraction(self):
        parsed = parse_timestamp("2024-03-05T10:20:30.12+00:00")

        assert parsed == datetime(2024, 3, 5, 10, 20, 30, 120000, tzinfo=timezone.utc)

    def test_parse_z_suffix(self):
        assert parse_timestamp("2026-03-05T09:30:00.000Z") == datetime(2026, 3, 5, 9, 30, tzinfo=timezone.utc)

    def test_naive_timestamp_treated_as_utc(self):
        assert parse_timestamp("2026-03-05T09:30:00").tzinfo is not None

    @pytest.mark.parametrize("value", [None, "", "not-a-date", "2026-13-45"])
    def test_unparseable_returns_none(self, value):
        assert parse_timestamp(value) is None

    def test_format_for_display(self):
        assert format_date_for_display("2024-03-05T10:20:30.000Z") == "3/5/2024"

    def test_format_missing_date(self):
        assert format_date_for_display(None) == NOT_AVAILABLE
        assert format_date_for_display("garbage") == NOT_AVAILABLE


class TestRecordFromRow:

    def test_full_row(self, row_factory):
        row = row_factory(
            technician_logs=[{"date": "2026-03-05T10:00:00.000Z", "technician": "Ann", "action": "Reseated RAM"}],
            final_condition="Partially",
            priority="High",
        )

        record = record_from_row(row)

        assert record.id == row["id"]
        assert record.serial_number == "SN-001"
        assert record.priority is Priority.HIGH
        assert record.final_condition is FinalCondition.PARTIALLY
        assert record.technician_logs == (
            TechnicianLog(date="2026-03-05T10:00:00.000Z", technician="Ann", action="Reseated RAM"),
        )
        assert record.formatted_received_date == "3/5/2026"
        assert record.formatted_fixed_date == NOT_AVAILABLE

    def test_missing_fields_default_to_not_available(self):
        record = record_from_row({"id": "abc", "received_date": "2026-03-05T09:30:00.000Z"})

        assert record.job_card_no == NOT_AVAILABLE
        assert record.type == NOT_AVAILABLE
        assert record.serial_number == NOT_AVAILABLE
        assert record.office_number == NOT_AVAILABLE
        assert record.assigned_to == NOT_AVAILABLE
        assert record.notes == NOT_AVAILABLE
        assert record.status is EquipmentStatus.PENDING
        assert record.priority is Priority.MEDIUM
        assert record.technician_logs == ()
        assert record.final_condition is None

    def test_blank_strings_default_to_not_available(self, row_factory):
        record = record_from_row(row_factory(notes="   ", owner=""))

        assert record.notes == NOT_AVAILABLE
        assert record.owner == NOT_AVAILABLE

    def test_malformed_values_fall_back(self, row_factory):
        record = record_from_row(
            row_factory(status="Exploded", priority="Urgent", technician_logs="oops", final_condition="Melted")
        )

        assert record.status is EquipmentStatus.PENDING
        assert record.priority is Priority.MEDIUM
        assert record.technician_logs == ()
        assert record.final_condition is None

    def test_unparseable_received_date_displays_not_available(self, row_factory):
        record = record_from_row(row_factory(received_date="yesterday-ish"))

        assert record.formatted_received_date == NOT_AVAILABLE
        assert parse_timestamp(record.received_date) is not None

    def test_fixed_date_implies_fixed_status(self, row_factory):
        record = record_from_row(row_factory(status="Pending", fixed_date="2026-03-06T08:00:00Z"))

        assert record.status is EquipmentStatus.FIXED
        assert record.fixed_date == "2026-03-06T08:00:00.000Z"
        assert record.formatted_fixed_date == "3/6/2026"

    def test_fixed_without_date_uses_updated_at(self, row_factory):
        record = record_from_row(row_factory(status="Fixed", updated_at="2026-03-07T00:00:00Z"))

        assert record.fixed_date == "2026-03-07T00:00:00.000Z"
        assert record.is_fixed

    def test_missing_id_gets_generated(self):
        assert record_from_row({}).id


class TestEquipmentRecord:

    def test_status_and_fixed_date_must_agree(self):
        with pytest.raises(InvalidTransitionError):
            EquipmentRecord(id="a", status=EquipmentStatus.FIXED)
        with pytest.raises(InvalidTransitionError):
            EquipmentRecord(id="a", fixed_date="2026-03-05T09:30:00.000Z")

    def test_to_dict_round_trips(self, record_factory):
        record = record_factory(
            status="Fixed",
            fixed_date="2026-03-06T08:00:00.000Z",
            technician_logs=[{"date": "d", "technician": "t", "action": "a"}],
        )

        assert EquipmentRecord.from_dict(record.to_dict()) == record

    def test_insert_row_has_no_display_fields(self, record_factory):
        row = record_factory().to_insert_row()

        assert "formatted_received_date" not in row
        assert row["status"] == "Pending"
        assert row["technician_logs"] == []


class TestSyncTask:

    def test_from_dict_requires_id_and_action(self):
        with pytest.raises(KeyError):
            SyncTask.from_dict({"action": "ADD"})
        with pytest.raises(ValueError):
            SyncTask.from_dict({"id": "1", "action": "DELETE"})

    def test_to_dict(self):
        task = SyncTask(id="1", action=SyncAction.UPDATE, payload={"id": "a"}, queued_at="t")

        assert SyncTask.from_dict(task.to_dict()) == task
