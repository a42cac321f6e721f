"""
Condo Routes - search, registration and access reports
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel

from core.access.report import generate_access_report, report_period
from core.access.workflow import CONDOS_COLLECTION
from core.condos.resolver import FilterType, ResolveOptions, SearchType
from core.errors import InvalidRequest, NotFound, PermissionDenied
from core.models import ActorRole, GeoPoint
from reporting.access_pdf import AccessReportPDF
from web.dependencies import Actor, Services, get_actor, get_optional_actor, get_services


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/condos", tags=["condos"])


class RegisterCondoBody(BaseModel):
    place_id: str
    name: Optional[str] = None


def _user_location(lat: Optional[float], lng: Optional[float]) -> Optional[GeoPoint]:
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise InvalidRequest("lat and lng must be given together")
    try:
        return GeoPoint(lat, lng)
    except ValueError as e:
        raise InvalidRequest(str(e))


def _parse_option(parser, value: Optional[str]):
    try:
        return parser(value)
    except ValueError as e:
        raise InvalidRequest(str(e))


# =============================================================================
# Search
# =============================================================================


@router.get("/search")
async def search_condos(
    q: str = Query("", description="Name, address or identifier"),
    filter: Optional[str] = Query(None, description="all, nearby or recent"),
    search_type: Optional[str] = Query(None, description="all, name, address or id"),
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    max_results: int = Query(10, ge=1, le=50),
    actor: Optional[Actor] = Depends(get_optional_actor),
    services: Services = Depends(get_services),
):
    """
    Search condos in the local registry, augmented with the places index.

    Only candidates with ``is_selectable`` may be used as request targets.
    """
    options = ResolveOptions(
        max_results=max_results,
        user_location=_user_location(lat, lng),
        filter_type=_parse_option(FilterType.from_string, filter),
        search_type=_parse_option(SearchType.from_string, search_type),
        user_id=actor.actor_id if actor else None,
        bias_radius_m=services.config.places_bias_radius_m,
    )
    candidates = await services.resolver.resolve(q, options)
    return {"results": [c.to_dict() for c in candidates], "count": len(candidates)}


# =============================================================================
# Registration
# =============================================================================


@router.post("/register", status_code=201)
async def register_condo(
    body: RegisterCondoBody,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Create a condo from a place id. 409 if the place is already registered."""
    if actor.role not in (ActorRole.CONDO, ActorRole.ADMIN):
        raise PermissionDenied("Only condo or admin accounts can register condos")

    condo = await services.registry.register_from_place(body.place_id, name=body.name)
    return condo.to_dict()


# =============================================================================
# Reports
# =============================================================================


async def _load_report(
    condo_id: str,
    start: Optional[date],
    end: Optional[date],
    actor: Actor,
    services: Services,
):
    if actor.role != ActorRole.ADMIN and not (
        actor.role == ActorRole.CONDO and actor.actor_id == condo_id
    ):
        raise PermissionDenied(f"{actor.actor_id} may not view reports for condo {condo_id}")

    condo = await services.store.get(CONDOS_COLLECTION, condo_id)
    if condo is None:
        raise NotFound(CONDOS_COLLECTION, condo_id)

    period_start, period_end = report_period(start, end)
    report = await generate_access_report(services.store, condo_id, period_start, period_end)
    return report, condo.get("name")


@router.get("/{condo_id}/report")
async def access_report(
    condo_id: str,
    start: Optional[date] = Query(None, description="First day (YYYY-MM-DD)"),
    end: Optional[date] = Query(None, description="Last day, inclusive (YYYY-MM-DD)"),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Access statistics for a condo; defaults to the last 30 days."""
    report, condo_name = await _load_report(condo_id, start, end, actor, services)
    data = report.to_dict()
    data["condo_name"] = condo_name
    return data


@router.get("/{condo_id}/report.pdf")
async def access_report_pdf(
    condo_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """The same report rendered as a PDF."""
    report, condo_name = await _load_report(condo_id, start, end, actor, services)
    pdf = AccessReportPDF().generate_to_buffer(report, condo_name)
    filename = f"access-{condo_id}-{report.start:%Y%m%d}-{report.end:%Y%m%d}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
