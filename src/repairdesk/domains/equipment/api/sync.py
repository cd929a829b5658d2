# src/repairdesk/domains/equipment/api/sync.py
"""
Sync Status API

Connectivity flag, queued tasks and recent notices for the status banner.
"""

from fastapi import APIRouter, Request

from ....core.container import get_context

router = APIRouter(prefix="/sync")


@router.get("/status")
async def get_sync_status(request: Request):
    return get_context(request).engine.sync_status()
