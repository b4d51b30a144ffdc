# backend/reservation_api/routes/v1/admin.py
"""
Admin catalog routes - API v1

Every endpoint requires a user listed in ADMIN_EMAILS. Deletes are soft:
the court or timeslot is deactivated so existing reservations keep their
references.

Endpoints:
    GET/POST /admin/courts
    PUT/DELETE /admin/courts/{court_id}
    GET/POST /admin/timeslots
    PUT/DELETE /admin/timeslots/{timeslot_id}
    GET /admin/stats
"""

from typing import List

from fastapi import APIRouter, Depends, status

from ...api.dependencies import get_catalog_service, get_current_admin
from ...core.exceptions import DomainException
from ...schemas.catalog import (
    CourtCreate,
    CourtResponse,
    CourtUpdate,
    StatsResponse,
    TimeslotCreate,
    TimeslotResponse,
    TimeslotUpdate,
)
from ...services.catalog_service import CatalogService
from .common import handle_domain_exception

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(get_current_admin)]
)


@router.get("/courts", response_model=List[CourtResponse])
def list_courts(service: CatalogService = Depends(get_catalog_service)) -> List[CourtResponse]:
    return [CourtResponse.model_validate(c) for c in service.list_all_courts()]


@router.post("/courts", response_model=CourtResponse, status_code=status.HTTP_201_CREATED)
def create_court(
    payload: CourtCreate, service: CatalogService = Depends(get_catalog_service)
) -> CourtResponse:
    try:
        return CourtResponse.model_validate(
            service.create_court(payload.name, payload.capacity, payload.description)
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/courts/{court_id}", response_model=CourtResponse)
def update_court(
    court_id: str,
    payload: CourtUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> CourtResponse:
    try:
        return CourtResponse.model_validate(
            service.update_court(court_id, **payload.model_dump(exclude_unset=True))
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/courts/{court_id}", response_model=CourtResponse)
def delete_court(court_id: str, service: CatalogService = Depends(get_catalog_service)) -> CourtResponse:
    try:
        return CourtResponse.model_validate(service.deactivate_court(court_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/timeslots", response_model=List[TimeslotResponse])
def list_timeslots(
    service: CatalogService = Depends(get_catalog_service),
) -> List[TimeslotResponse]:
    return [TimeslotResponse.model_validate(t) for t in service.list_all_windows()]


@router.post("/timeslots", response_model=TimeslotResponse, status_code=status.HTTP_201_CREATED)
def create_timeslot(
    payload: TimeslotCreate, service: CatalogService = Depends(get_catalog_service)
) -> TimeslotResponse:
    try:
        return TimeslotResponse.model_validate(service.create_timeslot(payload.time, payload.duration))
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/timeslots/{timeslot_id}", response_model=TimeslotResponse)
def update_timeslot(
    timeslot_id: str,
    payload: TimeslotUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> TimeslotResponse:
    try:
        return TimeslotResponse.model_validate(
            service.update_timeslot(timeslot_id, **payload.model_dump(exclude_unset=True))
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/timeslots/{timeslot_id}", response_model=TimeslotResponse)
def delete_timeslot(
    timeslot_id: str, service: CatalogService = Depends(get_catalog_service)
) -> TimeslotResponse:
    try:
        return TimeslotResponse.model_validate(service.deactivate_timeslot(timeslot_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/stats", response_model=StatsResponse)
def get_statistics(service: CatalogService = Depends(get_catalog_service)) -> StatsResponse:
    return StatsResponse.model_validate(service.get_statistics())
