"""
RepairDesk: equipment repair tracking with offline-tolerant sync.
"""

__version__ = "0.1.0"
