# src/repairdesk/domains/equipment/__init__.py
"""
Equipment Domain

Provides the repair-job workflow:
- Job intake and technician work logs
- Mark-as-fixed
- Overstay alerts
- Sync queue status
"""

from .api import router

__all__ = ["router"]
