# backend/reservation_api/routes/v1/reservations.py
"""
Reservation routes - API v1

All business logic delegated to ReservationService and
ReservationLifecycleService.

Endpoints:
    POST / - Admit a new pending reservation
    GET / - Own reservations (scope=all|upcoming|past)
    GET /{reservation_id} - Reservation details, owner only
    PUT /{reservation_id}/cancel - Cancel an own reservation
"""

from typing import List, Literal

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies import (
    get_current_user,
    get_lifecycle_service,
    get_reservation_service,
)
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.reservation import ReservationCreate, ReservationResponse
from ...services.reservation_lifecycle import ReservationLifecycleService
from ...services.reservation_service import ReservationService
from .common import handle_domain_exception

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreate,
    current_user: User = Depends(get_current_user),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = service.admit(
            current_user.id,
            payload.court_id,
            payload.timeslot_id,
            payload.date,
            notes=payload.notes,
        )
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[ReservationResponse])
def list_reservations(
    scope: Literal["all", "upcoming", "past"] = Query("all"),
    current_user: User = Depends(get_current_user),
    service: ReservationService = Depends(get_reservation_service),
) -> List[ReservationResponse]:
    try:
        return [
            ReservationResponse.model_validate(r)
            for r in service.list_for_user(current_user.id, scope=scope)
        ]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: str,
    current_user: User = Depends(get_current_user),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        return ReservationResponse.model_validate(
            service.get_reservation_for_user(reservation_id, current_user.id)
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/{reservation_id}/cancel", response_model=ReservationResponse)
def cancel_reservation(
    reservation_id: str,
    current_user: User = Depends(get_current_user),
    service: ReservationLifecycleService = Depends(get_lifecycle_service),
) -> ReservationResponse:
    try:
        return ReservationResponse.model_validate(service.cancel(reservation_id, current_user.id))
    except DomainException as e:
        handle_domain_exception(e)
