"""
Static places index for development and testing.
Answers from an in-memory list without external requests.
"""

from __future__ import annotations

from typing import Iterable, Optional

from core.errors import ExternalIndexDegraded
from core.models import GeoPoint
from places.base import (
    DEFAULT_BIAS_RADIUS_M,
    AddressComponents,
    PlaceDetails,
    PlaceResult,
    PlacesIndex,
)


class StaticPlacesIndex(PlacesIndex):
    """Places index over a fixed set of places."""

    def __init__(
        self,
        places: Iterable[PlaceResult] = (),
        components: Optional[dict[str, AddressComponents]] = None,
        fail_with: Optional[str] = None,
    ):
        """
        Args:
            places: Places returned by searches
            components: Optional structured address per place id
            fail_with: If set, every call raises ExternalIndexDegraded with this status
        """
        self._places = list(places)
        self._components = components or {}
        self._fail_with = fail_with
        self.calls: list[tuple[str, str]] = []

    def add(self, place: PlaceResult, components: Optional[AddressComponents] = None) -> None:
        self._places.append(place)
        if components is not None:
            self._components[place.place_id] = components

    def _check(self) -> None:
        if self._fail_with:
            raise ExternalIndexDegraded(f"Places returned {self._fail_with}", status=self._fail_with)

    async def text_search(
        self,
        query: str,
        bias: Optional[GeoPoint] = None,
        radius_m: int = DEFAULT_BIAS_RADIUS_M,
    ) -> list[PlaceResult]:
        self.calls.append(("text_search", query))
        self._check()
        tokens = query.lower().split()
        return [
            place for place in self._places
            if all(t in f"{place.name} {place.address}".lower() for t in tokens)
        ]

    async def details(self, place_id: str) -> Optional[PlaceDetails]:
        self.calls.append(("details", place_id))
        self._check()
        for place in self._places:
            if place.place_id == place_id:
                return PlaceDetails(
                    place_id=place.place_id,
                    name=place.name,
                    address=place.address,
                    latitude=place.latitude,
                    longitude=place.longitude,
                    components=self._components.get(place_id, AddressComponents()),
                )
        return None
