# src/repairdesk/infrastructure/supabase_client.py
"""
Supabase Client

Provides the Supabase-backed EquipmentGateway used by the reconciliation
engine and the repair-status lookup.

Usage:
    from .supabase_client import create_equipment_gateway

    gateway = await create_equipment_gateway(config.supabase)
    rows = await gateway.select_all()

Error mapping:
    PostgREST 23505 (unique_violation)      -> DuplicateKeyError (permanent)
    PGRST*, SQLSTATE 22/23/42, 4xx status   -> RejectedRemoteError (permanent)
    network, timeouts, 5xx, 408, 429        -> TransientRemoteError
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from ..config import SupabaseConfig
from ..core.exceptions import (
    ConfigurationError,
    DuplicateKeyError,
    RejectedRemoteError,
    RemoteError,
    TransientRemoteError,
)
from ..core.models import to_iso, utc_now
from ..core.ports.database import EquipmentGateway

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

# SQLSTATE classes that reject the statement itself (42501 is a row-level security denial)
REJECTED_SQLSTATE_CLASSES = ("22", "23", "42")

RETRYABLE_HTTP_STATUSES = {"408", "429"}

REQUIRED_VARIABLES = ["SUPABASE_URL", "SUPABASE_KEY"]


def is_rejection(code: Optional[str]) -> bool:
    """
    True when a PostgREST error code means the request can never succeed.

    PGRST codes and SQLSTATE classes 22/23/42 are rejections. A bare HTTP
    status counts as one when it is 4xx other than 408 and 429.
    """
    if not code:
        return False
    if code.startswith("PGRST"):
        return True
    if len(code) == 3 and code.isdigit():
        return code.startswith("4") and code not in RETRYABLE_HTTP_STATUSES
    return len(code) == 5 and code[:2] in REJECTED_SQLSTATE_CLASSES


def classify_error(error: Exception, operation: str) -> RemoteError:
    """Convert a client/library exception into a RemoteError subclass."""
    if isinstance(error, RemoteError):
        return error

    if isinstance(error, APIError):
        code = str(error.code) if error.code else None
        if code == UNIQUE_VIOLATION:
            return DuplicateKeyError(f"{operation}: duplicate key ({error.message})", code=code)
        if is_rejection(code):
            return RejectedRemoteError(f"{operation}: rejected ({code}: {error.message})", code=code)
        return TransientRemoteError(f"{operation}: {error.message}", code=code)

    if isinstance(error, httpx.TimeoutException):
        return TransientRemoteError(f"{operation}: request timed out")

    if isinstance(error, httpx.HTTPError):
        return TransientRemoteError(f"{operation}: {error}")

    return TransientRemoteError(f"{operation}: {error}")


async def create_supabase_client(config: SupabaseConfig) -> AsyncClient:
    """
    Create the async Supabase client.

    Raises:
        ConfigurationError: SUPABASE_URL or SUPABASE_KEY is missing
    """
    if not config.is_configured:
        missing = [
            name for name, value in zip(REQUIRED_VARIABLES, (config.url, config.key)) if not value
        ]
        logger.error(f"❌ Supabase not configured (missing {', '.join(missing)})")
        raise ConfigurationError("Supabase configuration is missing", missing=missing)

    client = await acreate_client(config.url, config.key)
    logger.info(f"✅ Supabase client ready: {config.url}")
    return client


class SupabaseEquipmentGateway(EquipmentGateway):
    """
    Supabase adapter for the equipment collection.
    """

    def __init__(self, client: AsyncClient, table: str = "equipment"):
        self._client = client
        self._table = table

    def _query(self):
        return self._client.table(self._table)

    async def select_all(self) -> List[Dict[str, Any]]:
        try:
            result = await self._query().select("*").order("received_date", desc=True).execute()
        except Exception as e:
            raise classify_error(e, "select equipment") from e
        return list(result.data or [])

    async def insert(self, row: Dict[str, Any]) -> None:
        try:
            await self._query().insert([row]).execute()
        except Exception as e:
            raise classify_error(e, f"insert equipment {row.get('id')}") from e

    async def update_job_details(
        self,
        record_id: str,
        technician_logs: List[Dict[str, Any]],
        final_condition: Optional[str],
    ) -> None:
        data = {
            "technician_logs": technician_logs,
            "final_condition": final_condition,
            "updated_at": to_iso(utc_now()),
        }
        try:
            await self._query().update(data).eq("id", record_id).execute()
        except Exception as e:
            raise classify_error(e, f"update job details {record_id}") from e

    async def update_status(self, record_id: str, status: str, fixed_date: Optional[str]) -> None:
        data = {
            "status": status,
            "fixed_date": fixed_date,
            "updated_at": to_iso(utc_now()),
        }
        try:
            await self._query().update(data).eq("id", record_id).execute()
        except Exception as e:
            raise classify_error(e, f"update status {record_id}") from e

    async def find_by_serial(self, serial_number: str) -> Optional[Dict[str, Any]]:
        try:
            result = await (
                self._query().select("*").eq("serial_number", serial_number).limit(1).execute()
            )
        except Exception as e:
            raise classify_error(e, f"lookup serial {serial_number}") from e
        return result.data[0] if result.data else None


async def create_equipment_gateway(config: SupabaseConfig) -> SupabaseEquipmentGateway:
    """Build the production gateway from configuration."""
    client = await create_supabase_client(config)
    return SupabaseEquipmentGateway(client, table=config.table)
