"""Reservation schemas."""

from datetime import date as date_type, datetime
from typing import Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel
from .catalog import CourtResponse, TimeslotResponse
from .payment import PaymentResponse


class ReservationCreate(StrictRequestModel):
    """``date`` stays a string here; the service rejects anything but YYYY-MM-DD."""

    court_id: str = Field(..., min_length=1)
    timeslot_id: str = Field(..., min_length=1)
    date: str
    notes: Optional[str] = Field(None, max_length=1000)


class ReservationResponse(StrictModel):
    id: str
    user_id: str
    court_id: str
    timeslot_id: str
    date: date_type
    status: str
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    court: Optional[CourtResponse] = None
    timeslot: Optional[TimeslotResponse] = None
    payment: Optional[PaymentResponse] = None
