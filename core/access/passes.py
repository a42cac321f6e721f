"""
Access Passes

An authorized request can be turned into a short-lived, signed pass that the
driver shows as a QR code at the gate. Scanning a valid pass moves the
request from ``authorized`` to ``arrived``.

Format: base64(json_payload).hmac_sha256_hex
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final, Optional, Union

from core.access.workflow import AccessRequestWorkflow
from core.errors import InvalidRequest, NotFound, PermissionDenied
from core.models import AccessRequest, AccessStatus, ActorRole, parse_timestamp, utc_now


logger = logging.getLogger(__name__)


DEFAULT_VALIDITY_MINUTES: Final[int] = 30

# Failure codes for statuses that cannot be scanned
STATUS_FAILURES: Final[dict[AccessStatus, tuple[str, str]]] = {
    AccessStatus.PENDING: ("PENDING", "Request is still pending"),
    AccessStatus.DENIED: ("DENIED", "Request was denied"),
    AccessStatus.ARRIVED: ("ALREADY_USED", "Pass was already used"),
    AccessStatus.ENTERED: ("ALREADY_USED", "Access was already granted"),
    AccessStatus.COMPLETED: ("ALREADY_USED", "Access was already granted"),
}


# =============================================================================
# Pass Payload
# =============================================================================


@dataclass(frozen=True)
class AccessPass:
    """Contents of a pass; enough for the gatehouse to identify the visit."""

    request_id: str
    condo_id: str
    generated_at: datetime
    expires_at: datetime
    resident_id: Optional[str] = None
    driver_id: Optional[str] = None
    driver_name: Optional[str] = None
    vehicle_plate: Optional[str] = None
    unit: Optional[str] = None
    block: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utc_now()) > self.expires_at

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "condo_id": self.condo_id,
            "resident_id": self.resident_id,
            "driver_id": self.driver_id,
            "driver_name": self.driver_name,
            "vehicle_plate": self.vehicle_plate,
            "unit": self.unit,
            "block": self.block,
            "generated_at": self.generated_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AccessPass":
        return cls(
            request_id=data["request_id"],
            condo_id=data["condo_id"],
            generated_at=parse_timestamp(data["generated_at"]),
            expires_at=parse_timestamp(data["expires_at"]),
            resident_id=data.get("resident_id"),
            driver_id=data.get("driver_id"),
            driver_name=data.get("driver_name"),
            vehicle_plate=data.get("vehicle_plate"),
            unit=data.get("unit"),
            block=data.get("block"),
        )

    @classmethod
    def for_request(
        cls,
        request: AccessRequest,
        now: datetime,
        validity_minutes: int = DEFAULT_VALIDITY_MINUTES,
    ) -> "AccessPass":
        return cls(
            request_id=request.id,
            condo_id=request.condo_id,
            generated_at=now,
            expires_at=now + timedelta(minutes=validity_minutes),
            resident_id=request.resident_id,
            driver_id=request.driver_id,
            driver_name=request.driver_name,
            vehicle_plate=request.vehicle_plate,
            unit=request.unit,
            block=request.block,
        )


# =============================================================================
# Signing
# =============================================================================


class AccessPassSigner:
    """Signs and verifies pass payloads with HMAC-SHA256."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("secret is required")
        self._secret = secret.encode()

    def _signature(self, payload_b64: str) -> str:
        return hmac.new(self._secret, payload_b64.encode(), hashlib.sha256).hexdigest()

    def sign(self, access_pass: AccessPass) -> str:
        payload = json.dumps(access_pass.to_dict(), separators=(",", ":"), sort_keys=True)
        payload_b64 = base64.urlsafe_b64encode(payload.encode()).decode()
        return f"{payload_b64}.{self._signature(payload_b64)}"

    def verify(self, token: str) -> AccessPass:
        """
        Decode a signed token.

        Raises:
            ValueError: If the token is malformed or the signature is wrong.
        """
        try:
            payload_b64, signature = token.strip().rsplit(".", 1)
        except (AttributeError, ValueError):
            raise ValueError("Malformed pass token")

        if not hmac.compare_digest(signature, self._signature(payload_b64)):
            raise ValueError("Pass signature mismatch")

        try:
            payload = base64.urlsafe_b64decode(payload_b64.encode()).decode()
            return AccessPass.from_dict(json.loads(payload))
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError) as e:
            raise ValueError(f"Unreadable pass payload: {e}")


# =============================================================================
# Validation Results
# =============================================================================


@dataclass(frozen=True)
class PassValidationSuccess:
    """Returned when a pass is accepted at the gate."""

    request: AccessRequest
    access_pass: AccessPass


@dataclass(frozen=True)
class PassValidationFailure:
    """Returned when a pass is rejected."""

    reason: str
    error_code: str  # INVALID, NOT_FOUND, PENDING, DENIED, ALREADY_USED, NOT_AUTHORIZED, EXPIRED, WRONG_CONDO


PassValidationResult = Union[PassValidationSuccess, PassValidationFailure]


# =============================================================================
# Service
# =============================================================================


def _may_issue(request: AccessRequest, actor_id: str, actor_role: ActorRole) -> bool:
    if actor_role == ActorRole.ADMIN:
        return True
    if actor_role == ActorRole.RESIDENT:
        return request.resident_id == actor_id
    if actor_role == ActorRole.DRIVER:
        return request.driver_id == actor_id
    if actor_role == ActorRole.CONDO:
        return request.condo_id == actor_id
    return False


class AccessPassService:
    """Issues passes for authorized requests and validates them at the gate."""

    def __init__(
        self,
        workflow: AccessRequestWorkflow,
        signer: AccessPassSigner,
        validity_minutes: int = DEFAULT_VALIDITY_MINUTES,
    ):
        if validity_minutes < 1:
            raise ValueError("validity_minutes must be at least 1")
        self._workflow = workflow
        self._signer = signer
        self._validity_minutes = validity_minutes

    async def issue(
        self,
        request_id: str,
        actor_id: str,
        actor_role: ActorRole,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Issue a signed pass for an authorized request.

        Raises:
            NotFound: If the request does not exist
            InvalidRequest: If the request is not authorized
            PermissionDenied: If the actor is not part of the request
        """
        request = await self._workflow.get(request_id)
        if request.status != AccessStatus.AUTHORIZED:
            raise InvalidRequest(
                f"Request {request_id} is {request.status.value}; only authorized requests get a pass"
            )
        if not _may_issue(request, actor_id, actor_role):
            raise PermissionDenied(f"{actor_role.value} {actor_id} may not issue a pass for {request_id}")

        access_pass = AccessPass.for_request(request, now or utc_now(), self._validity_minutes)
        return self._signer.sign(access_pass)

    async def validate(
        self,
        token: str,
        actor_id: str,
        actor_role: ActorRole,
        now: Optional[datetime] = None,
    ) -> PassValidationResult:
        """
        Validate a scanned pass and mark the request as arrived.

        Rejections never write to the store.
        """
        try:
            access_pass = self._signer.verify(token)
        except ValueError as e:
            logger.warning("Rejected pass scanned by %s: %s", actor_id, e)
            return PassValidationFailure(reason="Invalid or malformed pass", error_code="INVALID")

        try:
            request = await self._workflow.get(access_pass.request_id)
        except NotFound:
            return PassValidationFailure(reason="Access request not found", error_code="NOT_FOUND")

        if request.status != AccessStatus.AUTHORIZED:
            error_code, reason = STATUS_FAILURES.get(
                request.status, ("NOT_AUTHORIZED", "Request is not authorized")
            )
            return PassValidationFailure(reason=reason, error_code=error_code)

        if access_pass.is_expired(now):
            return PassValidationFailure(reason="Pass has expired", error_code="EXPIRED")

        if actor_role != ActorRole.ADMIN:
            if actor_role != ActorRole.CONDO:
                return PassValidationFailure(
                    reason="Only the gatehouse can validate passes",
                    error_code="NOT_AUTHORIZED",
                )
            if request.condo_id != actor_id:
                return PassValidationFailure(
                    reason="Pass belongs to another condominium",
                    error_code="WRONG_CONDO",
                )

        updated = await self._workflow.update_status(
            request.id, AccessStatus.ARRIVED, actor_id, actor_role
        )
        return PassValidationSuccess(request=updated, access_pass=access_pass)
