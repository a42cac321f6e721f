"""
Access Request Workflow

Creates, lists and transitions access requests against the document store.

Principles:
1. Stateless per call - all state lives in the store
2. Every status change goes through the shared transition graph
3. Role scoping decides which requests an actor may see
4. Notifications are best-effort and never undo a state change
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Final, Iterable, Optional, Union

from core.access.notifications import (
    LoggingNotifier,
    Notifier,
    build_creation_notifications,
    build_status_notifications,
    dispatch_best_effort,
)
from core.access.transitions import INITIAL_STATUS, role_may_set, validate_transition
from core.errors import InvalidRequest, NotFound, PermissionDenied, UnknownCondo
from core.models import (
    AccessRequest,
    AccessStatus,
    ActorRole,
    CondoStatus,
    RequestType,
)
from core.store.base import Condition, DocumentStore, Operator, SortSpec


logger = logging.getLogger(__name__)


# =============================================================================
# Collections
# =============================================================================

REQUESTS_COLLECTION: Final[str] = "access_requests"
CONDOS_COLLECTION: Final[str] = "condos"
DRIVERS_COLLECTION: Final[str] = "drivers"
RESIDENTS_COLLECTION: Final[str] = "residents"

# Field that scopes each role's view of the requests collection
ROLE_SCOPE_FIELDS: Final[dict[ActorRole, str]] = {
    ActorRole.RESIDENT: "resident_id",
    ActorRole.DRIVER: "driver_id",
    ActorRole.CONDO: "condo_id",
}

StatusFilter = Union[AccessStatus, Iterable[AccessStatus], None]


# =============================================================================
# Inputs and Results
# =============================================================================


@dataclass
class NewAccessRequest:
    """Caller input for creating an access request."""

    condo_id: str
    type: RequestType = RequestType.DRIVER
    resident_id: Optional[str] = None
    driver_id: Optional[str] = None
    unit: Optional[str] = None
    block: Optional[str] = None
    comment: Optional[str] = None
    driver_name: Optional[str] = None
    vehicle_plate: Optional[str] = None
    vehicle_model: Optional[str] = None


@dataclass
class AccessRequestDetails:
    """A request joined with its related resident, driver and condo records."""

    request: AccessRequest
    resident: Optional[dict] = None
    driver: Optional[dict] = None
    condo: Optional[dict] = None

    def to_dict(self) -> dict:
        data = self.request.to_dict()
        data.update({
            "resident": self.resident,
            "driver": self.driver,
            "condo": self.condo,
        })
        return data


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _normalise_status_filter(status_filter: StatusFilter) -> list[AccessStatus]:
    if status_filter is None:
        return []
    if isinstance(status_filter, AccessStatus):
        return [status_filter]
    return list(status_filter)


# =============================================================================
# Workflow
# =============================================================================


class AccessRequestWorkflow:
    """
    Access request operations over an injected document store.

    Store failures surface as StoreUnavailable; the workflow never retries.
    Duplicate create calls are not deduplicated and concurrent status
    updates are last-write-wins.
    """

    def __init__(self, store: DocumentStore, notifier: Optional[Notifier] = None):
        self._store = store
        self._notifier = notifier or LoggingNotifier()

    @property
    def store(self) -> DocumentStore:
        return self._store

    # =========================================================================
    # Create
    # =========================================================================

    async def create(
        self,
        new_request: NewAccessRequest,
        actor_role: ActorRole,
        actor_id: Optional[str] = None,
    ) -> AccessRequest:
        """
        Create a pending access request.

        Args:
            new_request: Request input
            actor_role: Role of the creator; decides which fields are required
            actor_id: Id of the creator

        Returns:
            The stored AccessRequest in state ``pending``

        Raises:
            InvalidRequest: If required fields for the role are missing
            UnknownCondo: If the condo is missing or inactive
        """
        condo_id = _clean(new_request.condo_id)
        if not condo_id:
            raise InvalidRequest("condo_id is required")

        resident_id = _clean(new_request.resident_id)
        driver_id = _clean(new_request.driver_id)
        unit = _clean(new_request.unit)
        block = _clean(new_request.block)
        plate = _clean(new_request.vehicle_plate)
        plate = plate.upper() if plate else None

        if actor_role == ActorRole.RESIDENT:
            resident_id = resident_id or actor_id
            if not resident_id:
                raise InvalidRequest("resident_id is required for resident requests")
        elif actor_role == ActorRole.DRIVER:
            driver_id = driver_id or actor_id
            if not unit:
                raise InvalidRequest("unit is required for driver requests")
        elif not resident_id and not unit:
            raise InvalidRequest("either resident_id or unit is required")

        await self._require_active_condo(condo_id)

        if resident_id:
            await self._require_resident_of_condo(resident_id, condo_id)
        elif actor_role == ActorRole.DRIVER:
            resident = await self._find_resident_of_unit(condo_id, unit, block)
            if resident:
                resident_id = resident["id"]

        snapshot = {
            "driver_name": _clean(new_request.driver_name),
            "vehicle_plate": plate,
            "vehicle_model": _clean(new_request.vehicle_model),
        }
        if driver_id is None and plate:
            driver = await self._find_driver_by_plate(plate)
            if driver:
                driver_id = driver["id"]
        if driver_id and not snapshot["driver_name"]:
            driver = await self._store.get(DRIVERS_COLLECTION, driver_id)
            if driver:
                snapshot["driver_name"] = driver.get("name")
                snapshot["vehicle_plate"] = snapshot["vehicle_plate"] or driver.get("vehicle_plate")
                snapshot["vehicle_model"] = snapshot["vehicle_model"] or driver.get("vehicle_model")

        document = {
            "condo_id": condo_id,
            "status": INITIAL_STATUS.value,
            "type": new_request.type.value,
            "resident_id": resident_id,
            "driver_id": driver_id,
            "unit": unit,
            "block": block,
            "comment": _clean(new_request.comment),
            "created_by": actor_id,
            "updated_by": actor_id,
            **snapshot,
        }

        record = await self._store.create(REQUESTS_COLLECTION, document)
        request = AccessRequest.from_dict(record)
        logger.info(
            "Access request %s created for condo %s by %s %s",
            request.id,
            condo_id,
            actor_role.value,
            actor_id,
        )

        await dispatch_best_effort(self._notifier, build_creation_notifications(request))
        return request

    async def _require_active_condo(self, condo_id: str) -> dict:
        condo = await self._store.get(CONDOS_COLLECTION, condo_id)
        if condo is None:
            raise UnknownCondo(condo_id)
        if condo.get("status", CondoStatus.ACTIVE.value) != CondoStatus.ACTIVE.value:
            raise UnknownCondo(condo_id, reason="condo is not active")
        return condo

    async def _require_resident_of_condo(self, resident_id: str, condo_id: str) -> None:
        resident = await self._store.get(RESIDENTS_COLLECTION, resident_id)
        if resident is None:
            raise InvalidRequest(f"Resident {resident_id} not found")
        if resident.get("condo_id") != condo_id:
            raise InvalidRequest(f"Resident {resident_id} does not belong to condo {condo_id}")

    async def _find_resident_of_unit(
        self, condo_id: str, unit: str, block: Optional[str]
    ) -> Optional[dict]:
        conditions = [
            Condition("condo_id", Operator.EQ, condo_id),
            Condition("unit", Operator.EQ, unit),
        ]
        if block:
            conditions.append(Condition("block", Operator.EQ, block))
        residents = await self._store.query(RESIDENTS_COLLECTION, conditions, limit=1)
        return residents[0] if residents else None

    async def _find_driver_by_plate(self, plate: str) -> Optional[dict]:
        drivers = await self._store.query(
            DRIVERS_COLLECTION,
            [Condition("vehicle_plate", Operator.EQ, plate)],
            limit=1,
        )
        return drivers[0] if drivers else None

    # =========================================================================
    # Read
    # =========================================================================

    async def get(self, request_id: str) -> AccessRequest:
        """
        Get a request by id.

        Raises:
            NotFound: If no such request exists
        """
        record = await self._store.get(REQUESTS_COLLECTION, request_id)
        if record is None:
            raise NotFound(REQUESTS_COLLECTION, request_id)
        return AccessRequest.from_dict(record)

    async def list_for(
        self,
        actor_id: str,
        actor_role: ActorRole,
        status_filter: StatusFilter = None,
        limit: Optional[int] = None,
    ) -> list[AccessRequest]:
        """
        List requests visible to an actor, most recent first.

        Residents see their own requests, drivers the requests addressed to
        them, condos the requests for their condominium, admins everything.
        """
        conditions: list[Condition] = []
        scope_field = ROLE_SCOPE_FIELDS.get(actor_role)
        if scope_field:
            conditions.append(Condition(scope_field, Operator.EQ, actor_id))

        statuses = _normalise_status_filter(status_filter)
        if len(statuses) == 1:
            conditions.append(Condition("status", Operator.EQ, statuses[0].value))
        elif statuses:
            conditions.append(Condition("status", Operator.IN, [s.value for s in statuses]))

        records = await self._store.query(
            REQUESTS_COLLECTION,
            conditions,
            sort=SortSpec("created_at", descending=True),
            limit=limit,
        )
        return [AccessRequest.from_dict(r) for r in records]

    async def get_details(self, request_id: str) -> AccessRequestDetails:
        """
        Load a request together with its resident, driver and condo.

        Related records are fetched concurrently; a failed lookup is logged
        and left empty.
        """
        request = await self.get(request_id)
        return await self._load_details(request)

    async def list_details_for(
        self,
        actor_id: str,
        actor_role: ActorRole,
        status_filter: StatusFilter = None,
        limit: Optional[int] = None,
    ) -> list[AccessRequestDetails]:
        """list_for plus related records for every request."""
        requests = await self.list_for(actor_id, actor_role, status_filter, limit)
        return list(await asyncio.gather(*(self._load_details(r) for r in requests)))

    async def _load_details(self, request: AccessRequest) -> AccessRequestDetails:
        lookups = (
            (RESIDENTS_COLLECTION, request.resident_id),
            (DRIVERS_COLLECTION, request.driver_id),
            (CONDOS_COLLECTION, request.condo_id),
        )
        resident, driver, condo = await asyncio.gather(
            *(self._get_related(collection, record_id) for collection, record_id in lookups)
        )
        return AccessRequestDetails(request=request, resident=resident, driver=driver, condo=condo)

    async def _get_related(self, collection: str, record_id: Optional[str]) -> Optional[dict]:
        if not record_id:
            return None
        try:
            return await self._store.get(collection, record_id)
        except Exception as e:
            logger.warning("Could not load %s/%s: %s", collection, record_id, e)
            return None

    # =========================================================================
    # Update
    # =========================================================================

    async def update_status(
        self,
        request_id: str,
        new_status: AccessStatus,
        actor_id: str,
        actor_role: ActorRole,
        comment: Optional[str] = None,
    ) -> AccessRequest:
        """
        Move a request along the status graph.

        Residents may authorize or deny their own requests. The gatehouse
        may also record arrival, entry and completion for its condo. Admins
        may set any status. Re-applying the current status is a silent
        no-op: nothing is written and nobody is notified.

        Raises:
            NotFound: If no such request exists
            PermissionDenied: If the actor may not set this status on the request
            InvalidTransition: If the edge is not in the graph
        """
        request = await self.get(request_id)
        self._require_writer(request, new_status, actor_id, actor_role)
        if request.status == new_status:
            logger.debug("Request %s already %s; ignoring", request_id, new_status.value)
            return request

        validate_transition(request.status, new_status)

        partial = {"status": new_status.value, "updated_by": actor_id}
        comment = _clean(comment)
        if comment:
            partial["comment"] = f"{request.comment}\n{comment}" if request.comment else comment

        record = await self._store.update(REQUESTS_COLLECTION, request_id, partial)
        updated = AccessRequest.from_dict(record)
        logger.info(
            "Access request %s moved %s -> %s by %s",
            request_id,
            request.status.value,
            new_status.value,
            actor_id,
        )

        await dispatch_best_effort(
            self._notifier,
            build_status_notifications(updated, new_status, actor_id),
        )
        return updated

    @staticmethod
    def _require_writer(
        request: AccessRequest,
        new_status: AccessStatus,
        actor_id: str,
        actor_role: ActorRole,
    ) -> None:
        if not role_may_set(actor_role, new_status):
            raise PermissionDenied(
                f"{actor_role.value} {actor_id} may not set request {request.id} to {new_status.value}"
            )
        scope_field = ROLE_SCOPE_FIELDS.get(actor_role)
        if scope_field and getattr(request, scope_field) != actor_id:
            raise PermissionDenied(f"Request {request.id} is outside the scope of {actor_id}")
