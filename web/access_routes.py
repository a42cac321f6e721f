"""
Access Request Routes - HTTP API over the access workflow

Every route acts on behalf of the actor in the X-Actor-Id / X-Actor-Role
headers. Domain errors are translated to HTTP status codes by the
application's exception handlers.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.access.passes import PassValidationFailure
from core.access.workflow import ROLE_SCOPE_FIELDS, NewAccessRequest
from core.errors import InvalidRequest, PermissionDenied
from core.models import AccessRequest, AccessStatus, ActorRole, RequestType
from web.dependencies import Actor, Services, get_actor, get_services


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(tags=["access"])


# =============================================================================
# Request Bodies
# =============================================================================


class CreateAccessRequestBody(BaseModel):
    condo_id: str
    type: str = RequestType.DRIVER.value
    resident_id: Optional[str] = None
    driver_id: Optional[str] = None
    unit: Optional[str] = None
    block: Optional[str] = None
    comment: Optional[str] = None
    driver_name: Optional[str] = None
    vehicle_plate: Optional[str] = None
    vehicle_model: Optional[str] = None


class StatusChangeBody(BaseModel):
    status: str
    comment: Optional[str] = None


class ValidatePassBody(BaseModel):
    token: str


# =============================================================================
# Helpers
# =============================================================================


def parse_status(value: str) -> AccessStatus:
    status = AccessStatus.from_string(value or "")
    if status is None:
        raise InvalidRequest(f"Unknown status: {value}")
    return status


def parse_status_filter(value: Optional[str]) -> Optional[list[AccessStatus]]:
    """Comma-separated statuses, or None for all."""
    if not value:
        return None
    return [parse_status(part) for part in value.split(",") if part.strip()]


def parse_request_type(value: str) -> RequestType:
    try:
        return RequestType((value or "").strip().lower())
    except ValueError:
        raise InvalidRequest(f"Unknown request type: {value}")


def require_visible(request: AccessRequest, actor: Actor) -> None:
    """
    Raise PermissionDenied unless the request is inside the actor's scope.
    """
    if actor.role == ActorRole.ADMIN:
        return
    scope_field = ROLE_SCOPE_FIELDS.get(actor.role)
    if scope_field is None or getattr(request, scope_field) != actor.actor_id:
        raise PermissionDenied(f"Request {request.id} is outside the scope of {actor.actor_id}")


# =============================================================================
# Requests
# =============================================================================


@router.post("/requests", status_code=201)
async def create_request(
    body: CreateAccessRequestBody,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Create a pending access request."""
    new_request = NewAccessRequest(
        condo_id=body.condo_id,
        type=parse_request_type(body.type),
        resident_id=body.resident_id,
        driver_id=body.driver_id,
        unit=body.unit,
        block=body.block,
        comment=body.comment,
        driver_name=body.driver_name,
        vehicle_plate=body.vehicle_plate,
        vehicle_model=body.vehicle_model,
    )
    request = await services.workflow.create(new_request, actor.role, actor.actor_id)
    return request.to_dict()


@router.get("/requests")
async def list_requests(
    status: Optional[str] = Query(None, description="Comma-separated statuses"),
    details: bool = Query(False, description="Include resident, driver and condo"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """List requests visible to the actor, most recent first."""
    status_filter = parse_status_filter(status)
    if details:
        items = await services.workflow.list_details_for(
            actor.actor_id, actor.role, status_filter, limit
        )
    else:
        items = await services.workflow.list_for(actor.actor_id, actor.role, status_filter, limit)
    return {"requests": [item.to_dict() for item in items], "count": len(items)}


@router.get("/requests/{request_id}")
async def get_request(
    request_id: str,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Get one request with its related records."""
    details = await services.workflow.get_details(request_id)
    require_visible(details.request, actor)
    return details.to_dict()


@router.post("/requests/{request_id}/status")
async def change_status(
    request_id: str,
    body: StatusChangeBody,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Move a request along the status graph."""
    new_status = parse_status(body.status)
    current = await services.workflow.get(request_id)
    require_visible(current, actor)

    updated = await services.workflow.update_status(
        request_id, new_status, actor.actor_id, actor.role, comment=body.comment
    )
    return updated.to_dict()


# =============================================================================
# Gate Passes
# =============================================================================


@router.post("/requests/{request_id}/pass", status_code=201)
async def issue_pass(
    request_id: str,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Issue a signed gate pass for an authorized request."""
    token = await services.passes.issue(request_id, actor.actor_id, actor.role)
    return {
        "request_id": request_id,
        "token": token,
        "valid_for_minutes": services.config.access_pass_ttl_minutes,
    }


@router.post("/passes/validate")
async def validate_pass(
    body: ValidatePassBody,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """
    Validate a scanned pass.

    Returns:
        - valid: true with the updated request if accepted
        - valid: false with error_code and reason otherwise
    """
    result = await services.passes.validate(body.token, actor.actor_id, actor.role)

    if isinstance(result, PassValidationFailure):
        return JSONResponse({
            "valid": False,
            "error_code": result.error_code,
            "reason": result.reason,
        })

    return {
        "valid": True,
        "request": result.request.to_dict(),
        "pass": result.access_pass.to_dict(),
    }
