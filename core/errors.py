"""
Error taxonomy for the access workflow and condo resolver.

Rejections (InvalidTransition, NotFound, UnknownCondo, InvalidRequest,
PermissionDenied, DuplicateCondo) leave stored state untouched.
StoreUnavailable wraps backend/network failures of the document store.
ExternalIndexDegraded is raised by places index clients and is never
surfaced by the resolver.
"""

from __future__ import annotations

from typing import Optional


class CondyError(Exception):
    """Base class for all domain errors."""

    pass


class InvalidTransition(CondyError):
    """Raised when a status change is not an edge of the request graph."""

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        current_value = getattr(current, "value", current)
        requested_value = getattr(requested, "value", requested)
        super().__init__(
            f"Cannot move access request from '{current_value}' to '{requested_value}'"
        )


class NotFound(CondyError):
    """Raised when a record does not exist."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection}/{record_id} not found")


class UnknownCondo(CondyError):
    """Raised when a request references a missing or inactive condo."""

    def __init__(self, condo_id: Optional[str], reason: str = "not found"):
        self.condo_id = condo_id
        self.reason = reason
        super().__init__(f"Condo {condo_id!r} cannot receive requests: {reason}")


class InvalidRequest(CondyError, ValueError):
    """Raised when input fails boundary validation."""

    pass


class PermissionDenied(CondyError):
    """Raised when the actor may not perform the operation."""

    pass


class DuplicateCondo(CondyError):
    """Raised when registering a place that already exists locally."""

    def __init__(self, existing_id: str, place_id: Optional[str] = None):
        self.existing_id = existing_id
        self.place_id = place_id
        super().__init__(f"Place {place_id!r} is already registered as condo {existing_id}")


class StoreUnavailable(CondyError):
    """Raised when the document store cannot be reached."""

    pass


class ExternalIndexDegraded(CondyError):
    """Raised by places index clients on non-OK status or network failure."""

    def __init__(self, message: str, status: Optional[str] = None):
        self.status = status
        super().__init__(message)
