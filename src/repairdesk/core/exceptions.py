"""
Exception hierarchy for RepairDesk.

Remote errors carry a ``permanent`` flag so the sync queue can decide
whether a failed replay should be retried or dropped.
"""

from typing import Optional


class RepairDeskError(Exception):
    """Base class for all RepairDesk errors."""


class ConfigurationError(RepairDeskError):
    """Required configuration (e.g. Supabase credentials) is missing."""

    def __init__(self, message: str, missing: Optional[list] = None):
        super().__init__(message)
        self.missing = missing or []


class RemoteError(RepairDeskError):
    """A remote gateway call failed."""

    permanent = False

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class TransientRemoteError(RemoteError):
    """Network error, timeout or server-side failure. Retrying later may succeed."""


class DuplicateKeyError(RemoteError):
    """The row already exists remotely. Retrying will never succeed."""

    permanent = True


class RejectedRemoteError(RemoteError):
    """The server rejected the request. The same payload will never succeed."""

    permanent = True


class CacheCorruptedError(RepairDeskError):
    """The locally cached snapshot could not be parsed."""


class RecordNotFoundError(RepairDeskError):
    """No equipment record with the given id is known locally."""


class InvalidTransitionError(RepairDeskError):
    """A mutation would violate a record invariant."""
