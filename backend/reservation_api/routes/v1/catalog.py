# backend/reservation_api/routes/v1/catalog.py
"""
Public catalog routes - API v1

Endpoints:
    GET /dates - Bookable dates starting today
    GET /timeslots - Active timeslots, or their availability when ``date`` is given
    GET /courts - Active courts, or their availability when ``date`` and ``timeslot_id`` are given
"""

from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_availability_service, get_catalog_service
from ...core.exceptions import DomainException, ValidationException
from ...schemas.catalog import (
    AvailableDatesResponse,
    CourtAvailabilityResponse,
    CourtResponse,
    TimeslotAvailabilityResponse,
    TimeslotResponse,
)
from ...services.availability_service import AvailabilityService
from ...services.catalog_service import CatalogService
from .common import handle_domain_exception

router = APIRouter(tags=["catalog"])


@router.get("/dates", response_model=AvailableDatesResponse)
def get_available_dates(
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailableDatesResponse:
    return AvailableDatesResponse(dates=service.available_dates())


@router.get(
    "/timeslots",
    response_model=Union[List[TimeslotAvailabilityResponse], List[TimeslotResponse]],
)
def get_timeslots(
    date: Optional[str] = Query(None, description="YYYY-MM-DD; returns availability when set"),
    catalog: CatalogService = Depends(get_catalog_service),
    availability: AvailabilityService = Depends(get_availability_service),
) -> Union[List[TimeslotAvailabilityResponse], List[TimeslotResponse]]:
    try:
        if date is None:
            return [TimeslotResponse.model_validate(t) for t in catalog.list_active_windows()]
        return [
            TimeslotAvailabilityResponse.model_validate(row)
            for row in availability.timeslot_availability(date)
        ]
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/courts",
    response_model=Union[List[CourtAvailabilityResponse], List[CourtResponse]],
)
def get_courts(
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    timeslot_id: Optional[str] = Query(None),
    catalog: CatalogService = Depends(get_catalog_service),
    availability: AvailabilityService = Depends(get_availability_service),
) -> Union[List[CourtAvailabilityResponse], List[CourtResponse]]:
    try:
        if date is None and timeslot_id is None:
            return [CourtResponse.model_validate(c) for c in catalog.list_active()]
        if date is None or timeslot_id is None:
            raise ValidationException(
                "Date and timeslot_id are required together",
                code="INVALID_INPUT",
                details={"date": date, "timeslot_id": timeslot_id},
            )
        return [
            CourtAvailabilityResponse.model_validate(row)
            for row in availability.court_availability(date, timeslot_id)
        ]
    except DomainException as e:
        handle_domain_exception(e)
