"""
Text matching, registry matching and deduplication for condo search.
"""

from __future__ import annotations

import unicodedata
from typing import Callable, Iterable, Optional, Protocol, Sequence

from core.condos.geo import coordinate_key
from core.models import Condo, CondoCandidate


class PlaceLike(Protocol):
    """Anything carrying a place's identity: PlaceResult, PlaceDetails, Condo."""

    place_id: Optional[str]
    name: str
    address: str
    latitude: Optional[float]
    longitude: Optional[float]


# =============================================================================
# Text
# =============================================================================


def normalise_text(value: Optional[str]) -> str:
    """Lower-case, accent-free, single-spaced text for comparisons."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(stripped.lower().split())


def tokenize_query(query: str) -> list[str]:
    """Split a query on whitespace into normalised tokens."""
    return normalise_text(query).split()


def matches_query(condo: Condo, tokens: Sequence[str], fields: Sequence[str]) -> bool:
    """
    True when every token is a substring of at least one of ``fields``.

    An empty token list matches nothing.
    """
    if not tokens:
        return False
    haystacks = [normalise_text(getattr(condo, f, None)) for f in fields]
    return all(any(token in h for h in haystacks) for token in tokens)


# =============================================================================
# Registry Matching
# =============================================================================


def _partial(a: str, b: str) -> bool:
    return bool(a) and bool(b) and (a in b or b in a)


def find_local_match(place: PlaceLike, registry: Iterable[Condo]) -> Optional[Condo]:
    """
    Find the registry record that describes the same place.

    Strategies, in order, each over the whole registry:
    1. same place id
    2. same coordinates at 4 decimal places
    3. exact name and partial address, or partial name and exact address
    """
    condos = list(registry)

    if place.place_id:
        for condo in condos:
            if condo.place_id == place.place_id:
                return condo

    key = coordinate_key(place.latitude, place.longitude)
    if key:
        for condo in condos:
            if coordinate_key(condo.latitude, condo.longitude) == key:
                return condo

    name = normalise_text(place.name)
    address = normalise_text(place.address)
    if name or address:
        for condo in condos:
            condo_name = normalise_text(condo.name)
            condo_address = normalise_text(condo.address)
            if name and name == condo_name and _partial(address, condo_address):
                return condo
            if address and address == condo_address and _partial(name, condo_name):
                return condo

    return None


# =============================================================================
# Deduplication
# =============================================================================


def _identifier_keys(candidate: CondoCandidate) -> list[str]:
    keys = [f"id:{candidate.id}"]
    if candidate.place_id:
        keys.append(f"place:{candidate.place_id}")
        keys.append(f"id:{candidate.place_id}")
    return keys


def _name_address_keys(candidate: CondoCandidate) -> list[str]:
    name = normalise_text(candidate.name)
    address = normalise_text(candidate.address)
    if not name or not address:
        return []
    return [f"{name}|{address}"]


def _coordinate_keys(candidate: CondoCandidate) -> list[str]:
    key = coordinate_key(candidate.latitude, candidate.longitude)
    return [key] if key else []


def _dedupe(
    candidates: Iterable[CondoCandidate],
    keys_of: Callable[[CondoCandidate], list[str]],
) -> list[CondoCandidate]:
    seen: set[str] = set()
    kept = []
    for candidate in candidates:
        keys = keys_of(candidate)
        if any(k in seen for k in keys):
            continue
        seen.update(keys)
        kept.append(candidate)
    return kept


def dedupe_candidates(candidates: Iterable[CondoCandidate]) -> list[CondoCandidate]:
    """
    Remove duplicates, keeping the first occurrence.

    Passes run in order: identifier (id or shared place id), name and
    address, then coordinates at 4 decimal places. Callers put local
    candidates first so they win over external ones.
    """
    result = _dedupe(candidates, _identifier_keys)
    result = _dedupe(result, _name_address_keys)
    return _dedupe(result, _coordinate_keys)
