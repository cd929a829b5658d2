# src/repairdesk/domains/repair_status/__init__.py
"""
Repair Status Domain

Public lookup of a device's repair status by serial number.
"""

from .api import router

__all__ = ["router"]
