# src/repairdesk/services/__init__.py
"""
Services: the reconciliation engine, its pure reducer and dashboard views.
"""

from .reconciliation import JobIntake, Notice, ReconciliationEngine

__all__ = ["JobIntake", "Notice", "ReconciliationEngine"]
