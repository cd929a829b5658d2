# src/repairdesk/domains/equipment/api/__init__.py
"""
Equipment API Router

Combines all equipment-related sub-routers.
"""

from fastapi import APIRouter

from .items import router as items_router
from .alerts import router as alerts_router
from .sync import router as sync_router

# Create combined router with /api prefix
router = APIRouter(prefix="/api", tags=["equipment"])

# Include sub-routers
router.include_router(items_router)
router.include_router(alerts_router)
router.include_router(sync_router)

__all__ = ["router"]
