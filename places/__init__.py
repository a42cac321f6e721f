"""
External places index clients.
"""

from places.base import (
    AddressComponents,
    PlaceDetails,
    PlaceResult,
    PlacesIndex,
)
from places.google import GooglePlacesIndex, parse_address_components
from places.static import StaticPlacesIndex

__all__ = [
    "AddressComponents",
    "PlaceDetails",
    "PlaceResult",
    "PlacesIndex",
    "GooglePlacesIndex",
    "parse_address_components",
    "StaticPlacesIndex",
]
