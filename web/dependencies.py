"""
Service container and request dependencies for the HTTP layer.

The web layer owns the only long-lived instances: one document store,
one places index and one notifier, wired into the core services on first
use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException

from core.access.notifications import ExpoPushNotifier, LoggingNotifier, Notifier
from core.access.passes import AccessPassService, AccessPassSigner
from core.access.workflow import AccessRequestWorkflow
from core.condos.registry import CondoRegistry
from core.condos.resolver import CondoIdentityResolver
from core.models import ActorRole
from core.store.base import DocumentStore
from core.store.memory import InMemoryDocumentStore
from places.base import PlacesIndex
from places.google import GooglePlacesIndex
from places.static import StaticPlacesIndex
from utils.config import Config


logger = logging.getLogger(__name__)


# =============================================================================
# Services
# =============================================================================


@dataclass
class Services:
    """Wired core services shared by all routes."""

    config: Config
    store: DocumentStore
    places_index: PlacesIndex
    notifier: Notifier
    workflow: AccessRequestWorkflow
    resolver: CondoIdentityResolver
    registry: CondoRegistry
    passes: AccessPassService


def build_services(
    config: Config,
    store: Optional[DocumentStore] = None,
    places_index: Optional[PlacesIndex] = None,
    notifier: Optional[Notifier] = None,
) -> Services:
    """
    Wire the core services from configuration.

    Explicit collaborators override the configured ones.
    """
    if store is None:
        store = InMemoryDocumentStore(persist_path=config.store_path)

    if places_index is None:
        if config.google_places_api_key:
            places_index = GooglePlacesIndex(
                config.google_places_api_key,
                timeout=config.places_timeout,
            )
        else:
            logger.warning("GOOGLE_PLACES_API_KEY not set; external condo search disabled")
            places_index = StaticPlacesIndex()

    if notifier is None:
        notifier = ExpoPushNotifier(store) if config.push_notifications else LoggingNotifier()

    workflow = AccessRequestWorkflow(store, notifier)
    return Services(
        config=config,
        store=store,
        places_index=places_index,
        notifier=notifier,
        workflow=workflow,
        resolver=CondoIdentityResolver(store, places_index),
        registry=CondoRegistry(store, places_index),
        passes=AccessPassService(
            workflow,
            AccessPassSigner(config.access_pass_secret),
            validity_minutes=config.access_pass_ttl_minutes,
        ),
    )


# =============================================================================
# Singleton Instance
# =============================================================================

_services_instance: Optional[Services] = None


def get_services() -> Services:
    """
    Get the services singleton, building it from the environment on first call.
    """
    global _services_instance
    if _services_instance is None:
        _services_instance = build_services(Config.load())
    return _services_instance


def set_services(services: Optional[Services]) -> None:
    """Replace the services singleton (None resets it)."""
    global _services_instance
    _services_instance = services


# =============================================================================
# Actor
# =============================================================================


@dataclass(frozen=True)
class Actor:
    """The caller, as asserted by the upstream authentication layer."""

    actor_id: str
    role: ActorRole


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    """
    Read the actor from ``X-Actor-Id`` and ``X-Actor-Role``.

    Raises:
        HTTPException(401) if either header is missing
        HTTPException(400) if the role is unknown
    """
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="X-Actor-Id and X-Actor-Role are required")

    role = ActorRole.from_string(x_actor_role)
    if role is None:
        raise HTTPException(status_code=400, detail=f"Unknown actor role: {x_actor_role}")

    return Actor(actor_id=x_actor_id.strip(), role=role)


def get_optional_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Optional[Actor]:
    """Like get_actor, but anonymous callers get None."""
    if not x_actor_id or not x_actor_role:
        return None
    return get_actor(x_actor_id, x_actor_role)
