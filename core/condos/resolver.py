"""
Condo Identity Resolver

Searches the local condo registry, augments thin results with an external
places index and merges both into one ranked candidate list.

Steps:
1. Exact identifier shortcut
2. Local token search
3. Distance from the user
4. External augmentation, matched back onto the registry
5. Merge and dedupe
6. Rank and truncate
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Final, Optional

from core.access.workflow import CONDOS_COLLECTION, REQUESTS_COLLECTION
from core.condos.geo import haversine_km
from core.condos.matching import (
    dedupe_candidates,
    find_local_match,
    matches_query,
    normalise_text,
    tokenize_query,
)
from core.errors import ExternalIndexDegraded
from core.models import Condo, CondoCandidate, GeoPoint
from core.store.base import Condition, DocumentStore, Operator, SortSpec
from places.base import DEFAULT_BIAS_RADIUS_M, PlaceResult, PlacesIndex


logger = logging.getLogger(__name__)


# =============================================================================
# Thresholds
# =============================================================================

MIN_QUERY_LENGTH: Final[int] = 2
EXTERNAL_MIN_QUERY_LENGTH: Final[int] = 3
# Augment with the external index when fewer local hits than this
EXTERNAL_TRIGGER_THRESHOLD: Final[int] = 3
IDENTIFIER_MIN_LENGTH: Final[int] = 20
RECENT_REQUESTS_LIMIT: Final[int] = 10


# =============================================================================
# Options
# =============================================================================


class FilterType(Enum):
    """Ranking mode for search results."""

    ALL = "all"
    NEARBY = "nearby"
    RECENT = "recent"

    @classmethod
    def from_string(cls, value: str) -> "FilterType":
        if not value:
            return cls.ALL
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown filter type: {value}")


class SearchType(Enum):
    """Which condo fields the query tokens are matched against."""

    ALL = "all"
    NAME = "name"
    ADDRESS = "address"
    ID = "id"

    @classmethod
    def from_string(cls, value: str) -> "SearchType":
        if not value:
            return cls.ALL
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown search type: {value}")


SEARCH_FIELDS: Final[dict[SearchType, tuple[str, ...]]] = {
    SearchType.ALL: ("name", "address", "place_id"),
    SearchType.NAME: ("name",),
    SearchType.ADDRESS: ("address",),
    SearchType.ID: ("id", "place_id"),
}


@dataclass
class ResolveOptions:
    """Options for a single resolve call."""

    max_results: int = 10
    only_active: bool = True
    user_location: Optional[GeoPoint] = None
    filter_type: FilterType = FilterType.ALL
    search_type: SearchType = SearchType.ALL
    user_id: Optional[str] = None
    bias_radius_m: int = DEFAULT_BIAS_RADIUS_M

    def __post_init__(self):
        if self.max_results < 1:
            raise ValueError("max_results must be at least 1")


def looks_like_identifier(query: str) -> bool:
    """External place ids are long, unspaced and contain '-' or '_'."""
    return (
        len(query) >= IDENTIFIER_MIN_LENGTH
        and not any(c.isspace() for c in query)
        and ("-" in query or "_" in query)
    )


# =============================================================================
# Ranking
# =============================================================================


def _sort_key_all(candidate: CondoCandidate):
    return (not candidate.in_local_registry, normalise_text(candidate.name))


def _sort_key_nearby(candidate: CondoCandidate):
    missing = candidate.distance_km is None
    return (missing, candidate.distance_km or 0.0, normalise_text(candidate.name))


def _sort_key_recent(candidate: CondoCandidate):
    return (not candidate.is_recent_for_user, normalise_text(candidate.name))


SORT_KEYS = {
    FilterType.ALL: _sort_key_all,
    FilterType.NEARBY: _sort_key_nearby,
    FilterType.RECENT: _sort_key_recent,
}


# =============================================================================
# Resolver
# =============================================================================


class CondoIdentityResolver:
    """
    Resolves free-text condo queries into selectable candidates.

    Only candidates with ``in_local_registry=True`` may become request
    targets. External index failures are logged and the local results are
    returned.
    """

    def __init__(self, store: DocumentStore, places_index: Optional[PlacesIndex] = None):
        self._store = store
        self._places_index = places_index

    async def resolve(
        self,
        query: Optional[str],
        options: Optional[ResolveOptions] = None,
    ) -> list[CondoCandidate]:
        """
        Search condos by name, address or identifier.

        Args:
            query: Free text; shorter than 2 characters returns []
            options: Ranking, filtering and location options

        Returns:
            Up to ``options.max_results`` candidates
        """
        options = options or ResolveOptions()
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        registry = await self._load_registry()

        # Step 1: exact identifier
        if looks_like_identifier(query):
            hit = self._find_by_identifier(query, registry, options.only_active)
            if hit is not None:
                return [self._decorate(CondoCandidate.from_condo(hit), options, set())]

        recent_ids = await self._recent_condo_ids(options.user_id)

        # Step 2: local search
        tokens = tokenize_query(query)
        fields = SEARCH_FIELDS[options.search_type]
        local = [
            CondoCandidate.from_condo(condo)
            for condo in registry
            if (condo.is_active or not options.only_active)
            and matches_query(condo, tokens, fields)
        ]

        # Step 4: external augmentation
        external: list[CondoCandidate] = []
        if (
            self._places_index is not None
            and len(local) < EXTERNAL_TRIGGER_THRESHOLD
            and len(query) >= EXTERNAL_MIN_QUERY_LENGTH
            and options.search_type != SearchType.ID
        ):
            external = await self._search_external(query, registry, options)

        # Step 3: distance and recency for everything
        candidates = [
            self._decorate(candidate, options, recent_ids)
            for candidate in local + external
        ]

        # Step 5: merge
        candidates = dedupe_candidates(candidates)

        # Step 6: rank
        candidates.sort(key=SORT_KEYS[options.filter_type])
        return candidates[: options.max_results]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load_registry(self) -> list[Condo]:
        records = await self._store.list_collection(CONDOS_COLLECTION)
        return [Condo.from_dict(r) for r in records]

    @staticmethod
    def _find_by_identifier(
        query: str,
        registry: list[Condo],
        only_active: bool,
    ) -> Optional[Condo]:
        for condo in registry:
            if query in (condo.place_id, condo.id):
                if only_active and not condo.is_active:
                    return None
                return condo
        return None

    async def _recent_condo_ids(self, user_id: Optional[str]) -> set[str]:
        if not user_id:
            return set()

        lookups = [
            self._store.query(
                REQUESTS_COLLECTION,
                [Condition(field, Operator.EQ, user_id)],
                sort=SortSpec("created_at", descending=True),
                limit=RECENT_REQUESTS_LIMIT,
            )
            for field in ("driver_id", "resident_id")
        ]
        results = await asyncio.gather(*lookups)
        return {r["condo_id"] for records in results for r in records if r.get("condo_id")}

    async def _search_external(
        self,
        query: str,
        registry: list[Condo],
        options: ResolveOptions,
    ) -> list[CondoCandidate]:
        try:
            places = await self._places_index.text_search(
                query,
                bias=options.user_location,
                radius_m=options.bias_radius_m,
            )
        except ExternalIndexDegraded as e:
            logger.warning("External places index degraded for %r: %s", query, e)
            return []
        except Exception as e:
            logger.warning("External places search failed for %r: %s", query, e)
            return []

        candidates = []
        for place in places:
            match = find_local_match(place, registry)
            if match is not None:
                if options.only_active and not match.is_active:
                    continue
                candidates.append(CondoCandidate.from_condo(match, from_external=True))
            else:
                candidates.append(self._external_candidate(place))
        return candidates

    @staticmethod
    def _external_candidate(place: PlaceResult) -> CondoCandidate:
        return CondoCandidate(
            id=place.place_id,
            name=place.name,
            address=place.address,
            place_id=place.place_id,
            latitude=place.latitude,
            longitude=place.longitude,
            from_external=True,
            in_local_registry=False,
        )

    @staticmethod
    def _decorate(
        candidate: CondoCandidate,
        options: ResolveOptions,
        recent_ids: set[str],
    ) -> CondoCandidate:
        location = options.user_location
        if location is not None and candidate.has_coordinates:
            candidate.distance_km = round(
                haversine_km(
                    location.latitude, location.longitude,
                    candidate.latitude, candidate.longitude,
                ),
                3,
            )
        candidate.is_recent_for_user = candidate.in_local_registry and candidate.id in recent_ids
        return candidate
