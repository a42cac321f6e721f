"""
Condo registration from external places.

Registering a place that already exists locally, by place id, coordinates
or name and address, is refused.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.access.workflow import CONDOS_COLLECTION
from core.condos.matching import PlaceLike, find_local_match
from core.errors import DuplicateCondo, InvalidRequest, NotFound
from core.models import Condo, CondoStatus
from core.store.base import DocumentStore
from places.base import PlacesIndex


logger = logging.getLogger(__name__)


class CondoRegistry:
    """Creates condos from places index entries without duplicating them."""

    def __init__(self, store: DocumentStore, places_index: PlacesIndex):
        self._store = store
        self._places_index = places_index

    async def all(self) -> list[Condo]:
        records = await self._store.list_collection(CONDOS_COLLECTION)
        return [Condo.from_dict(r) for r in records]

    async def find_existing(self, place: PlaceLike) -> Optional[Condo]:
        """Return the local condo describing ``place``, active or not."""
        return find_local_match(place, await self.all())

    async def register_from_place(self, place_id: str, name: Optional[str] = None) -> Condo:
        """
        Create an active condo from a place id.

        Args:
            place_id: External place identifier
            name: Optional display name overriding the place name

        Returns:
            The stored Condo

        Raises:
            InvalidRequest: If place_id is empty
            NotFound: If the places index does not know the place
            DuplicateCondo: If the place is already registered
            ExternalIndexDegraded: If the places index fails
        """
        place_id = (place_id or "").strip()
        if not place_id:
            raise InvalidRequest("place_id is required")

        details = await self._places_index.details(place_id)
        if details is None:
            raise NotFound("places", place_id)

        existing = await self.find_existing(details)
        if existing is not None:
            logger.info("Place %s already registered as condo %s", place_id, existing.id)
            raise DuplicateCondo(existing.id, place_id=place_id)

        components = details.components
        document = {
            "name": (name or "").strip() or details.name,
            "address": details.address or components.formatted,
            "status": CondoStatus.ACTIVE.value,
            "place_id": details.place_id,
            "latitude": details.latitude,
            "longitude": details.longitude,
            "city": components.city,
            "state": components.state,
            "address_components": components.to_dict(),
            "units": 0,
            "verified": False,
        }
        record = await self._store.create(CONDOS_COLLECTION, document)
        condo = Condo.from_dict(record)
        logger.info("Registered condo %s from place %s", condo.id, place_id)
        return condo
