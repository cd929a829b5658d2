# src/repairdesk/domains/equipment/api/items.py
"""
Equipment Items API

Job intake, technician work logs and mark-as-fixed. Every mutation is
applied optimistically; the response reflects local state even when the
remote write has been queued for later.
"""

from typing import List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import logging

from ....core.container import get_context
from ....core.exceptions import InvalidTransitionError, RecordNotFoundError
from ....core.models import Priority, UserRole
from ....services.dashboard import DashboardTab, dashboard_stats, equipment_categories, filter_items
from ....services.reconciliation import JobIntake
from ..constants import DEFAULT_EQUIPMENT_TYPE, REQUIRED_INTAKE_FIELDS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/items")


class JobCreate(BaseModel):
    type: str = DEFAULT_EQUIPMENT_TYPE
    serial_number: str = ""
    office_number: str = ""
    assigned_to: str = ""
    priority: Priority = Priority.MEDIUM
    os_firmware: str = ""
    notes: str = ""
    sr_number: str = ""
    owner: str = ""


class LogEntry(BaseModel):
    date: str
    technician: str
    action: str


class JobDetailsUpdate(BaseModel):
    technician_logs: List[LogEntry] = []
    final_condition: Optional[str] = None


class WorkLogCreate(BaseModel):
    technician: str
    action: str
    final_condition: Optional[str] = None


def _record_error(e: Exception) -> JSONResponse:
    if isinstance(e, RecordNotFoundError):
        return JSONResponse({"error": str(e)}, status_code=404)
    if isinstance(e, InvalidTransitionError):
        return JSONResponse({"error": str(e)}, status_code=409)
    return JSONResponse({"error": str(e)}, status_code=400)


@router.get("")
async def list_items(
    request: Request,
    tab: str = DashboardTab.ALL.value,
    type: Optional[str] = None,
    q: Optional[str] = None,
):
    """Get dashboard items for a tab, with type filter and search."""
    engine = get_context(request).engine
    try:
        selected = DashboardTab(tab)
    except ValueError:
        return JSONResponse({"error": f"Unknown tab: {tab}"}, status_code=400)

    items = filter_items(engine.items, selected, equipment_type=type, query=q)
    return {
        "items": [item.to_dict() for item in items],
        "stats": dashboard_stats(engine.items),
        "categories": equipment_categories(engine.items),
        "online": engine.is_online,
    }


@router.post("")
async def create_item(request: Request, body: JobCreate):
    """Log a device into the workshop."""
    missing = [name for name in REQUIRED_INTAKE_FIELDS if not getattr(body, name).strip()]
    if missing:
        return JSONResponse(
            {"error": "Please fill in all required fields", "missing": missing},
            status_code=400,
        )

    engine = get_context(request).engine
    role = getattr(request.state, "role", UserRole.ADMIN)
    record = await engine.add_job(JobIntake(**body.model_dump()), logged_by=role.value)
    return JSONResponse({"item": record.to_dict(), "queued": engine.queue.pending_count}, status_code=201)


@router.put("/{record_id}/logs")
async def update_job_details(request: Request, record_id: str, body: JobDetailsUpdate):
    """Replace technician logs (append-only) and the final condition."""
    engine = get_context(request).engine
    try:
        record = await engine.update_job_details(
            record_id,
            [entry.model_dump() for entry in body.technician_logs],
            body.final_condition,
        )
    except (RecordNotFoundError, InvalidTransitionError, ValueError) as e:
        return _record_error(e)
    return {"item": record.to_dict()}


@router.post("/{record_id}/logs")
async def add_work_log(request: Request, record_id: str, body: WorkLogCreate):
    """Append one technician log entry."""
    if not body.technician.strip() or not body.action.strip():
        return JSONResponse({"error": "technician and action are required"}, status_code=400)

    engine = get_context(request).engine
    try:
        record = await engine.log_work(record_id, body.technician, body.action, body.final_condition)
    except (RecordNotFoundError, InvalidTransitionError, ValueError) as e:
        return _record_error(e)
    return {"item": record.to_dict()}


@router.post("/{record_id}/fix")
async def mark_fixed(request: Request, record_id: str):
    """Mark a device as fixed."""
    engine = get_context(request).engine
    try:
        record = await engine.mark_as_fixed(record_id)
    except RecordNotFoundError as e:
        return _record_error(e)
    return {"item": record.to_dict()}


@router.post("/refresh")
async def refresh_items(request: Request):
    """Drain queued writes and refetch from the database."""
    context = get_context(request)
    await context.wait_for_refreshes()
    ok = await context.engine.fetch_items()
    return {
        "ok": ok,
        "count": len(context.engine.items),
        "pending": context.engine.queue.pending_count,
    }
