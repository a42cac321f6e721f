"""
Google Places index.

Text Search and Place Details over the legacy JSON web service. Only the
fields needed to match and register condominiums are read.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Final, Optional

import requests

from core.errors import ExternalIndexDegraded
from core.models import GeoPoint
from places.base import (
    DEFAULT_BIAS_RADIUS_M,
    AddressComponents,
    PlaceDetails,
    PlaceResult,
    PlacesIndex,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

BASE_URL: Final[str] = "https://maps.googleapis.com/maps/api/place"
TEXT_SEARCH_URL: Final[str] = f"{BASE_URL}/textsearch/json"
DETAILS_URL: Final[str] = f"{BASE_URL}/details/json"
DETAILS_FIELDS: Final[str] = "place_id,name,formatted_address,address_component,geometry"
REQUEST_TIMEOUT_SECONDS: Final[int] = 10

# Google component type -> AddressComponents field, first match wins
COMPONENT_MAP: Final[dict[str, str]] = {
    "route": "street",
    "street_number": "number",
    "sublocality_level_1": "neighborhood",
    "sublocality": "neighborhood",
    "administrative_area_level_2": "city",
    "administrative_area_level_1": "state",
    "postal_code": "postal_code",
    "country": "country",
}


# =============================================================================
# Parser
# =============================================================================


def parse_address_components(components: list[dict]) -> AddressComponents:
    """Map Google ``address_components`` onto AddressComponents."""
    values: dict[str, str] = {}
    for component in components or []:
        for component_type in component.get("types", []):
            target = COMPONENT_MAP.get(component_type)
            if target:
                values.setdefault(target, component.get("long_name", ""))
                break
    return AddressComponents(**values)


def _location(place: dict) -> tuple[Optional[float], Optional[float]]:
    location = (place.get("geometry") or {}).get("location") or {}
    return location.get("lat"), location.get("lng")


def parse_place_result(place: dict) -> PlaceResult:
    latitude, longitude = _location(place)
    return PlaceResult(
        place_id=place["place_id"],
        name=place.get("name", ""),
        address=place.get("formatted_address", ""),
        latitude=latitude,
        longitude=longitude,
        types=tuple(place.get("types", [])),
    )


def parse_place_details(place: dict) -> PlaceDetails:
    latitude, longitude = _location(place)
    return PlaceDetails(
        place_id=place["place_id"],
        name=place.get("name", ""),
        address=place.get("formatted_address", ""),
        latitude=latitude,
        longitude=longitude,
        components=parse_address_components(place.get("address_components", [])),
    )


# =============================================================================
# Client
# =============================================================================


class GooglePlacesIndex(PlacesIndex):
    """
    Places index backed by the Google Places web service.

    Requests are blocking and run in a worker thread. ``ZERO_RESULTS`` and
    ``NOT_FOUND`` are empty answers; any other non-OK status or a network
    failure raises ExternalIndexDegraded.
    """

    def __init__(
        self,
        api_key: str,
        session: Optional[requests.Session] = None,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
        language: str = "pt-BR",
    ):
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        self._timeout = timeout
        self._language = language

    def _get(self, url: str, params: dict) -> dict:
        params = {**params, "key": self._api_key, "language": self._language}
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ExternalIndexDegraded(f"Places request failed: {e}")

        status = payload.get("status", "UNKNOWN_ERROR")
        if status not in ("OK", "ZERO_RESULTS", "NOT_FOUND"):
            raise ExternalIndexDegraded(
                f"Places returned {status}: {payload.get('error_message', '')}".strip(),
                status=status,
            )
        return payload

    async def text_search(
        self,
        query: str,
        bias: Optional[GeoPoint] = None,
        radius_m: int = DEFAULT_BIAS_RADIUS_M,
    ) -> list[PlaceResult]:
        params = {"query": query}
        if bias is not None:
            params["location"] = f"{bias.latitude},{bias.longitude}"
            params["radius"] = radius_m

        payload = await asyncio.to_thread(self._get, TEXT_SEARCH_URL, params)
        results = []
        for place in payload.get("results", []):
            if not place.get("place_id"):
                continue
            results.append(parse_place_result(place))
        logger.debug("Places text search %r returned %d results", query, len(results))
        return results

    async def details(self, place_id: str) -> Optional[PlaceDetails]:
        payload = await asyncio.to_thread(
            self._get,
            DETAILS_URL,
            {"place_id": place_id, "fields": DETAILS_FIELDS},
        )
        place = payload.get("result")
        if payload.get("status") != "OK" or not place:
            return None
        place.setdefault("place_id", place_id)
        return parse_place_details(place)

    def close(self) -> None:
        """Close the session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
