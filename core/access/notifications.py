"""
Push notifications for access request events.

Notifications are a side channel: delivery failures are logged and
swallowed, never propagated to the operation that triggered them.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Final, Iterable, Optional

import requests

from core.models import AccessRequest, AccessStatus, RequestType
from core.store.base import DocumentStore
from utils.formatting import format_unit_label


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

EXPO_PUSH_URL: Final[str] = "https://exp.host/--/api/v2/push/send"
PUSH_TIMEOUT_SECONDS: Final[int] = 10
USERS_COLLECTION: Final[str] = "users"


# =============================================================================
# Message Model
# =============================================================================


@dataclass(frozen=True)
class Notification:
    """A message addressed to one actor (resident, driver or gatehouse)."""

    target_actor_id: str
    title: str
    body: str
    data: dict = field(default_factory=dict)


# =============================================================================
# Notifier Interface
# =============================================================================


class Notifier(ABC):
    """Abstract push notification dispatcher."""

    @abstractmethod
    async def notify(self, target_actor_id: str, title: str, body: str, data: dict) -> bool:
        """
        Deliver one notification.

        Returns:
            True if the message was handed to the push service.
        """
        pass


class LoggingNotifier(Notifier):
    """Notifier that only logs; the default when push is disabled."""

    async def notify(self, target_actor_id: str, title: str, body: str, data: dict) -> bool:
        logger.info("Notification to %s: %s - %s %s", target_actor_id, title, body, data)
        return True


class ExpoPushNotifier(Notifier):
    """
    Sends notifications through the Expo push service.

    Push tokens are read from the ``notification_token`` field of the
    target's ``users`` record.
    """

    def __init__(
        self,
        store: DocumentStore,
        session: Optional[requests.Session] = None,
        timeout: int = PUSH_TIMEOUT_SECONDS,
    ):
        self._store = store
        self._session = session or requests.Session()
        self._session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        self._timeout = timeout

    async def notify(self, target_actor_id: str, title: str, body: str, data: dict) -> bool:
        user = await self._store.get(USERS_COLLECTION, target_actor_id)
        token = (user or {}).get("notification_token")
        if not token:
            logger.debug("No push token registered for %s", target_actor_id)
            return False

        message = {
            "to": token,
            "title": title,
            "body": body,
            "data": data,
            "sound": "default",
        }
        response = await asyncio.to_thread(
            self._session.post, EXPO_PUSH_URL, json=message, timeout=self._timeout
        )
        response.raise_for_status()

        ticket = response.json().get("data") or {}
        if ticket.get("status") == "error":
            logger.warning(
                "Push service rejected message for %s: %s",
                target_actor_id,
                ticket.get("message"),
            )
            return False
        return True


# =============================================================================
# Message Builders
# =============================================================================


def _counterparts(request: AccessRequest, exclude: Optional[str] = None) -> list[str]:
    """Resident, driver and gatehouse of a request, minus ``exclude``."""
    targets = []
    for actor_id in (request.resident_id, request.driver_id, request.condo_id):
        if actor_id and actor_id != exclude and actor_id not in targets:
            targets.append(actor_id)
    return targets


def _subject(request: AccessRequest) -> str:
    who = request.driver_name or ("Delivery" if request.type == RequestType.DELIVERY else "Driver")
    where = format_unit_label(request.unit, request.block)
    return f"{who} for {where}" if where else who


STATUS_MESSAGES: Final[dict[AccessStatus, tuple[str, str]]] = {
    AccessStatus.AUTHORIZED: ("Access authorized", "{subject} has been authorized"),
    AccessStatus.DENIED: ("Access denied", "{subject} has been denied"),
    AccessStatus.ARRIVED: ("Arrived at the gate", "{subject} has arrived at the gatehouse"),
    AccessStatus.ENTERED: ("Entry registered", "{subject} has entered the condominium"),
    AccessStatus.COMPLETED: ("Access completed", "{subject} has completed the visit"),
}


def build_creation_notifications(request: AccessRequest) -> list[Notification]:
    """Messages sent when a request is created: gatehouse plus counterparts."""
    subject = _subject(request)
    data = {"request_id": request.id, "type": "new_request"}
    return [
        Notification(
            target_actor_id=actor_id,
            title="New access request",
            body=f"New access request: {subject}",
            data=data,
        )
        for actor_id in _counterparts(request, exclude=request.created_by)
    ]


def build_status_notifications(
    request: AccessRequest,
    new_status: AccessStatus,
    actor_id: Optional[str],
) -> list[Notification]:
    """Messages sent to everyone involved except the actor who made the change."""
    title, template = STATUS_MESSAGES.get(
        new_status, ("Access request updated", "{subject} is now " + new_status.value)
    )
    body = template.format(subject=_subject(request))
    data = {"request_id": request.id, "type": "status_changed", "status": new_status.value}
    return [
        Notification(target_actor_id=target, title=title, body=body, data=data)
        for target in _counterparts(request, exclude=actor_id)
    ]


# =============================================================================
# Dispatch
# =============================================================================


async def dispatch_best_effort(
    notifier: Notifier,
    notifications: Iterable[Notification],
) -> int:
    """
    Send notifications concurrently, swallowing failures.

    Returns:
        Number of notifications the notifier reported as delivered.
    """
    batch = list(notifications)
    if not batch:
        return 0

    results = await asyncio.gather(
        *(notifier.notify(n.target_actor_id, n.title, n.body, n.data) for n in batch),
        return_exceptions=True,
    )

    delivered = 0
    for notification, result in zip(batch, results):
        if isinstance(result, BaseException):
            logger.warning(
                "Notification to %s failed: %s",
                notification.target_actor_id,
                result,
            )
        elif result:
            delivered += 1
    return delivered
