"""
Data models for access requests and condominium search.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from utils.formatting import format_distance


# =============================================================================
# Enums
# =============================================================================


class AccessStatus(Enum):
    """
    Status of an access request.

    pending -> authorized | denied
    authorized -> arrived | denied
    arrived -> entered | denied
    entered -> completed
    """

    PENDING = "pending"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    ARRIVED = "arrived"
    ENTERED = "entered"
    COMPLETED = "completed"

    @classmethod
    def from_string(cls, value: str) -> Optional["AccessStatus"]:
        """Convert string to AccessStatus, case-insensitive."""
        normalised = value.lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return None


class RequestType(Enum):
    """Who is coming through the gate."""

    DRIVER = "driver"
    DELIVERY = "delivery"


class ActorRole(Enum):
    """Role of the user acting on requests."""

    RESIDENT = "resident"
    DRIVER = "driver"
    CONDO = "condo"
    ADMIN = "admin"

    @classmethod
    def from_string(cls, value: str) -> Optional["ActorRole"]:
        """Convert string to ActorRole, case-insensitive."""
        normalised = value.lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return None


class CondoStatus(Enum):
    """Registry status of a condominium."""

    ACTIVE = "active"
    INACTIVE = "inactive"


# =============================================================================
# Helpers
# =============================================================================


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept a datetime or ISO string; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


# =============================================================================
# Geography
# =============================================================================


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError("latitude must be between -90 and 90")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError("longitude must be between -180 and 180")

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


# =============================================================================
# Access Request
# =============================================================================


@dataclass
class AccessRequest:
    """
    A driver or courier's request to enter a condominium.

    Driver fields are a snapshot taken at creation time so the request can be
    displayed without loading the driver record.
    """

    id: str
    condo_id: str
    status: AccessStatus
    type: RequestType = RequestType.DRIVER
    resident_id: Optional[str] = None
    driver_id: Optional[str] = None
    unit: Optional[str] = None
    block: Optional[str] = None
    comment: Optional[str] = None
    driver_name: Optional[str] = None
    vehicle_plate: Optional[str] = None
    vehicle_model: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate request data."""
        if not self.id:
            raise ValueError("id is required")
        if not self.condo_id:
            raise ValueError("condo_id is required")

    @property
    def is_terminal(self) -> bool:
        return self.status in (AccessStatus.DENIED, AccessStatus.COMPLETED)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "condo_id": self.condo_id,
            "status": self.status.value,
            "type": self.type.value,
            "resident_id": self.resident_id,
            "driver_id": self.driver_id,
            "unit": self.unit,
            "block": self.block,
            "comment": self.comment,
            "driver_name": self.driver_name,
            "vehicle_plate": self.vehicle_plate,
            "vehicle_model": self.vehicle_model,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AccessRequest":
        """Create from a store document."""
        return cls(
            id=data["id"],
            condo_id=data["condo_id"],
            status=AccessStatus(data["status"]),
            type=RequestType(data.get("type") or RequestType.DRIVER.value),
            resident_id=data.get("resident_id"),
            driver_id=data.get("driver_id"),
            unit=data.get("unit"),
            block=data.get("block"),
            comment=data.get("comment"),
            driver_name=data.get("driver_name"),
            vehicle_plate=data.get("vehicle_plate"),
            vehicle_model=data.get("vehicle_model"),
            created_by=data.get("created_by"),
            updated_by=data.get("updated_by"),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )


# =============================================================================
# Condominium
# =============================================================================


@dataclass
class Condo:
    """A condominium registered in the local registry."""

    id: str
    name: str
    address: str = ""
    status: CondoStatus = CondoStatus.ACTIVE
    place_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: str = ""
    state: str = ""
    units: int = 0
    verified: bool = False

    def __post_init__(self):
        if not self.id:
            raise ValueError("id is required")

    @property
    def is_active(self) -> bool:
        return self.status == CondoStatus.ACTIVE

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "status": self.status.value,
            "place_id": self.place_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "city": self.city,
            "state": self.state,
            "units": self.units,
            "verified": self.verified,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Condo":
        status = data.get("status") or CondoStatus.ACTIVE.value
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            address=data.get("address") or "",
            status=CondoStatus(status),
            place_id=data.get("place_id") or None,
            latitude=_optional_float(data.get("latitude")),
            longitude=_optional_float(data.get("longitude")),
            city=data.get("city") or "",
            state=data.get("state") or "",
            units=int(data.get("units") or 0),
            verified=bool(data.get("verified")),
        )


@dataclass
class CondoCandidate:
    """
    An unpersisted search result.

    Only candidates found in the local registry may become the target of an
    access request; external-only candidates are informational.
    """

    id: str
    name: str
    address: str = ""
    place_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: CondoStatus = CondoStatus.ACTIVE
    from_external: bool = False
    in_local_registry: bool = False
    distance_km: Optional[float] = None
    is_recent_for_user: bool = False

    @property
    def is_selectable(self) -> bool:
        """Whether this candidate may be used as a request target."""
        return self.in_local_registry

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @classmethod
    def from_condo(cls, condo: Condo, from_external: bool = False) -> "CondoCandidate":
        return cls(
            id=condo.id,
            name=condo.name,
            address=condo.address,
            place_id=condo.place_id,
            latitude=condo.latitude,
            longitude=condo.longitude,
            status=condo.status,
            from_external=from_external,
            in_local_registry=True,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "place_id": self.place_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "status": self.status.value,
            "from_external": self.from_external,
            "in_local_registry": self.in_local_registry,
            "distance_km": self.distance_km,
            "distance_label": format_distance(self.distance_km),
            "is_recent_for_user": self.is_recent_for_user,
            "is_selectable": self.is_selectable,
        }
