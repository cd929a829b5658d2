# tests/conftest.py
"""
Pytest configuration and fixtures for the RepairDesk test suite.

Provides:
- In-memory EquipmentGateway with failure injection
- SQLite ":memory:" local store, queue, cache and engine
- Record/row factories
- FastAPI test clients (anonymous, admin, attachee)

Note: Nothing here talks to a real Supabase project.
"""

import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

# Set test environment before imports
os.environ["REPAIRDESK_ENV"] = "test"

from repairdesk.config import (
    ConnectivityConfig,
    RepairDeskConfig,
    SupabaseConfig,
    SyncConfig,
)
from repairdesk.core.exceptions import DuplicateKeyError, TransientRemoteError
from repairdesk.core.models import EquipmentRecord, record_from_row, to_iso
from repairdesk.core.ports.database import EquipmentGateway
from repairdesk.infrastructure.cache import LocalCacheStore
from repairdesk.infrastructure.connectivity import ConnectivityMonitor
from repairdesk.infrastructure.local_store import SQLiteKeyValueStore
from repairdesk.infrastructure.sync_queue import SyncQueue
from repairdesk.main import create_app
from repairdesk.services.reconciliation import ReconciliationEngine

FIXED_NOW = datetime(2026, 3, 5, 9, 30, tzinfo=timezone.utc)


# ============== Fake remote store ==============

class FakeEquipmentGateway(EquipmentGateway):
    """
    In-memory `equipment` table.

    - `offline = True` makes every call raise TransientRemoteError
    - `fail_once(op, key, exc)` raises exc on the next matching call only
    - `calls` records (op, key) for every attempted call, in order
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows: Dict[str, Dict[str, Any]] = {}
        for row in rows or []:
            self.rows[row["id"]] = dict(row)
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.offline = False
        self._failures: Dict[Tuple[str, Optional[str]], List[Exception]] = {}
        self.closed = False

    def fail_once(self, op: str, key: Optional[str] = None, exc: Optional[Exception] = None):
        error = exc or TransientRemoteError(f"{op}: simulated network failure")
        self._failures.setdefault((op, key), []).append(error)

    def _call(self, op: str, key: Optional[str] = None):
        self.calls.append((op, key))
        if self.offline:
            raise TransientRemoteError(f"{op}: network unreachable")
        pending = self._failures.get((op, key))
        if pending:
            raise pending.pop(0)

    def ops(self, op: str) -> List[Optional[str]]:
        return [key for name, key in self.calls if name == op]

    async def select_all(self) -> List[Dict[str, Any]]:
        self._call("select")
        rows = [dict(row) for row in self.rows.values()]
        return sorted(rows, key=lambda r: r.get("received_date") or "", reverse=True)

    async def insert(self, row: Dict[str, Any]) -> None:
        self._call("insert", row["id"])
        if row["id"] in self.rows:
            raise DuplicateKeyError(f"insert equipment {row['id']}: duplicate key", code="23505")
        self.rows[row["id"]] = dict(row)

    async def update_job_details(self, record_id, technician_logs, final_condition) -> None:
        self._call("update_job_details", record_id)
        if record_id in self.rows:
            self.rows[record_id].update(
                technician_logs=list(technician_logs),
                final_condition=final_condition,
                updated_at=to_iso(FIXED_NOW),
            )

    async def update_status(self, record_id, status, fixed_date) -> None:
        self._call("update_status", record_id)
        if record_id in self.rows:
            self.rows[record_id].update(status=status, fixed_date=fixed_date, updated_at=to_iso(FIXED_NOW))

    async def find_by_serial(self, serial_number: str) -> Optional[Dict[str, Any]]:
        self._call("find_by_serial", serial_number)
        for row in self.rows.values():
            if row.get("serial_number") == serial_number:
                return dict(row)
        return None

    async def close(self) -> None:
        self.closed = True


class StaticProbe:
    """Connectivity probe whose answer is set by the test."""

    def __init__(self, online: bool = True):
        self.online = online
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        return self.online


# ============== Factories ==============

def make_row(**overrides) -> Dict[str, Any]:
    """Raw `equipment` row as Supabase would return it."""
    row = {
        "id": str(uuid.uuid4()),
        "job_card_no": "COMETZ26/00001",
        "type": "Laptop",
        "serial_number": "SN-001",
        "office_number": "Room 1",
        "assigned_to": "J. Doe",
        "logged_by": "Admin",
        "status": "Pending",
        "priority": "Medium",
        "os_firmware": "Windows 11",
        "notes": "",
        "technician_logs": [],
        "final_condition": None,
        "received_date": to_iso(FIXED_NOW),
        "fixed_date": None,
        "sr_number": "SR-100",
        "owner": "Finance",
    }
    row.update(overrides)
    return row


def make_record(**overrides) -> EquipmentRecord:
    return record_from_row(make_row(**overrides))


@pytest.fixture
def row_factory():
    return make_row


@pytest.fixture
def record_factory():
    return make_record


# ============== Sync layer fixtures ==============

@pytest.fixture
def store():
    kv = SQLiteKeyValueStore(":memory:")
    yield kv
    kv.close()


@pytest.fixture
def gateway():
    return FakeEquipmentGateway()


@pytest.fixture
def queue(store):
    return SyncQueue(store)


@pytest.fixture
def cache(store):
    return LocalCacheStore(store)


@pytest.fixture
def engine(gateway, queue, cache):
    return ReconciliationEngine(gateway, queue, cache, clock=lambda: FIXED_NOW)


# ============== App fixtures ==============

@pytest.fixture
def test_config():
    return RepairDeskConfig(
        environment="test",
        log_level="DEBUG",
        supabase=SupabaseConfig(url="https://test.supabase.co", key="test-key"),
        sync=SyncConfig(local_db_path=":memory:"),
        connectivity=ConnectivityConfig(check_interval=0),
    )


@pytest.fixture
def probe():
    return StaticProbe(online=True)


@pytest.fixture
def app(test_config, gateway, store, probe):
    monitor = ConnectivityMonitor(probe, check_interval=0)
    return create_app(test_config, gateway=gateway, store=store, monitor=monitor)


@pytest.fixture
def client(app):
    """Anonymous client; startup/shutdown run around the test."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(client):
    response = client.post("/auth/login", json={"role": "Admin", "password": "admin123"})
    assert response.status_code == 200
    return client


@pytest.fixture
def attachee_client(client):
    response = client.post("/auth/login", json={"role": "Attachee"})
    assert response.status_code == 200
    return client


@pytest.fixture
def now():
    """The frozen clock the engine fixture runs on."""
    return FIXED_NOW
