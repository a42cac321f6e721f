"""
Access request status graph.

Every status change goes through validate_transition; no caller compares
status strings on its own.
"""

from __future__ import annotations

from typing import Final, Iterable

from core.errors import InvalidTransition
from core.models import AccessStatus, ActorRole


ALLOWED_TRANSITIONS: Final[dict[AccessStatus, frozenset[AccessStatus]]] = {
    AccessStatus.PENDING: frozenset({AccessStatus.AUTHORIZED, AccessStatus.DENIED}),
    AccessStatus.AUTHORIZED: frozenset({AccessStatus.ARRIVED, AccessStatus.DENIED}),
    AccessStatus.ARRIVED: frozenset({AccessStatus.ENTERED, AccessStatus.DENIED}),
    AccessStatus.ENTERED: frozenset({AccessStatus.COMPLETED}),
    AccessStatus.DENIED: frozenset(),
    AccessStatus.COMPLETED: frozenset(),
}

INITIAL_STATUS: Final = AccessStatus.PENDING

# Target statuses each role may set. Drivers never move their own requests.
ROLE_ALLOWED_TARGETS: Final[dict[ActorRole, frozenset[AccessStatus]]] = {
    ActorRole.RESIDENT: frozenset({AccessStatus.AUTHORIZED, AccessStatus.DENIED}),
    ActorRole.DRIVER: frozenset(),
    ActorRole.CONDO: frozenset({
        AccessStatus.AUTHORIZED,
        AccessStatus.DENIED,
        AccessStatus.ARRIVED,
        AccessStatus.ENTERED,
        AccessStatus.COMPLETED,
    }),
    ActorRole.ADMIN: frozenset(AccessStatus),
}

TERMINAL_STATUSES: Final[frozenset[AccessStatus]] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def allowed_next(status: AccessStatus) -> frozenset[AccessStatus]:
    """Statuses reachable from ``status`` in one step."""
    return ALLOWED_TRANSITIONS[status]


def is_terminal(status: AccessStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: AccessStatus, new: AccessStatus) -> bool:
    """Check whether ``current -> new`` is an edge of the graph."""
    return new in ALLOWED_TRANSITIONS[current]


def role_may_set(role: ActorRole, status: AccessStatus) -> bool:
    return status in ROLE_ALLOWED_TARGETS.get(role, frozenset())


def validate_transition(current: AccessStatus, new: AccessStatus) -> None:
    """
    Validate a status change.

    Raises:
        InvalidTransition: If the edge is not in the graph.
    """
    if not can_transition(current, new):
        raise InvalidTransition(current, new)


def is_valid_walk(statuses: Iterable[AccessStatus]) -> bool:
    """
    Check a status history.

    The history must start at the initial status and every consecutive pair
    must be an edge. Repeated statuses (idempotent updates) are collapsed.
    """
    previous = None
    for status in statuses:
        if previous is None:
            if status != INITIAL_STATUS:
                return False
        elif status != previous and not can_transition(previous, status):
            return False
        previous = status
    return True
