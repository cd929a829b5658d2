# src/repairdesk/core/__init__.py
"""
Core layer: domain models, exceptions, ports and the application context.
"""
