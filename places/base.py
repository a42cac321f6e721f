"""
Base places index interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, Optional

if TYPE_CHECKING:
    from core.models import GeoPoint


DEFAULT_BIAS_RADIUS_M: Final[int] = 5000


@dataclass(frozen=True)
class PlaceResult:
    """One hit from an external text search."""

    place_id: str
    name: str
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    types: tuple[str, ...] = ()

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict:
        return {
            "place_id": self.place_id,
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "types": list(self.types),
        }


@dataclass(frozen=True)
class AddressComponents:
    """Structured address of a place."""

    street: str = ""
    number: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    @property
    def formatted(self) -> str:
        parts = (self.street, self.number, self.neighborhood, self.city, self.state)
        return ", ".join(p for p in parts if p)

    def to_dict(self) -> dict:
        return {
            "street": self.street,
            "number": self.number,
            "neighborhood": self.neighborhood,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
        }


@dataclass(frozen=True)
class PlaceDetails:
    """Full record for one place id."""

    place_id: str
    name: str
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    components: AddressComponents = field(default_factory=AddressComponents)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class PlacesIndex(ABC):
    """Abstract external places index. Results are non-authoritative."""

    @abstractmethod
    async def text_search(
        self,
        query: str,
        bias: Optional[GeoPoint] = None,
        radius_m: int = DEFAULT_BIAS_RADIUS_M,
    ) -> list[PlaceResult]:
        """
        Search places by free text.

        Args:
            query: Search text
            bias: Optional location to bias results towards
            radius_m: Bias radius in metres

        Returns:
            List of PlaceResult, possibly empty.

        Raises:
            ExternalIndexDegraded: On non-OK status or network failure.
        """
        pass

    @abstractmethod
    async def details(self, place_id: str) -> Optional[PlaceDetails]:
        """
        Fetch details for a place id.

        Returns:
            PlaceDetails, or None if the index does not know the place.

        Raises:
            ExternalIndexDegraded: On non-OK status or network failure.
        """
        pass
