# src/repairdesk/domains/repair_status/api.py
"""
Repair Status Lookup API

Lets other systems ask "is this device still in the workshop?" by serial
number. Reads straight from the remote store; no session required.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
import logging

from ...core.container import get_context
from ...core.exceptions import RemoteError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/external", tags=["repair-status"])

# Statuses meaning the device has left the repair workflow
OUT_OF_REPAIR_STATUSES = {"Fixed", "Collected"}


def to_repair_status(row: dict) -> dict:
    status = row.get("status")
    return {
        "jobId": row.get("job_card_no"),
        "status": status,
        "inRepair": status not in OUT_OF_REPAIR_STATUSES,
        "srNumber": row.get("sr_number"),
        "receivedDate": row.get("created_at") or row.get("received_date"),
    }


@router.get("/repair-status/")
async def repair_status_missing_serial():
    return JSONResponse({"error": "Serial number is required"}, status_code=400)


@router.get("/repair-status/{serial_number}")
async def get_repair_status(request: Request, serial_number: str):
    """Get repair status for a serial number."""
    serial_number = serial_number.strip()
    if not serial_number:
        return JSONResponse({"error": "Serial number is required"}, status_code=400)

    gateway = get_context(request).gateway
    try:
        row = await gateway.find_by_serial(serial_number)
    except RemoteError as e:
        logger.error(f"Repair status lookup failed for {serial_number}: {e}")
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    if not row:
        return JSONResponse({"error": "Equipment not found"}, status_code=404)

    return to_repair_status(row)
