# src/repairdesk/domains/equipment/api/alerts.py
"""
Overstay Alerts API

Pending devices that have been in the workshop too long.
"""

from fastapi import APIRouter, Request

from ....core.container import get_context
from ....services.dashboard import OVERSTAY_THRESHOLD_DAYS, overstayed_items

router = APIRouter(prefix="/alerts")


@router.get("/overstay")
async def get_overstay_alerts(request: Request, threshold: int = OVERSTAY_THRESHOLD_DAYS):
    """Get pending items received `threshold` or more days ago."""
    engine = get_context(request).engine
    alerts = overstayed_items(engine.items, threshold_days=threshold)
    return {"alerts": alerts, "count": len(alerts), "threshold_days": threshold}
