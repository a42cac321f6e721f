"""
Condo identity resolution: local registry search, external augmentation,
deduplication and registration.
"""

from core.condos.geo import EARTH_RADIUS_KM, coordinate_key, haversine_km
from core.condos.matching import (
    dedupe_candidates,
    find_local_match,
    matches_query,
    normalise_text,
    tokenize_query,
)
from core.condos.resolver import (
    CondoIdentityResolver,
    FilterType,
    ResolveOptions,
    SearchType,
    MIN_QUERY_LENGTH,
    looks_like_identifier,
)
from core.condos.registry import CondoRegistry

__all__ = [
    "EARTH_RADIUS_KM",
    "coordinate_key",
    "haversine_km",
    "dedupe_candidates",
    "find_local_match",
    "matches_query",
    "normalise_text",
    "tokenize_query",
    "CondoIdentityResolver",
    "FilterType",
    "ResolveOptions",
    "SearchType",
    "MIN_QUERY_LENGTH",
    "looks_like_identifier",
    "CondoRegistry",
]
