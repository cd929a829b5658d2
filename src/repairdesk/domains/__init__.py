# src/repairdesk/domains/__init__.py
"""
Domain routers.

- equipment: repair jobs, overstay alerts and sync status
- repair_status: public lookup by serial number
"""
