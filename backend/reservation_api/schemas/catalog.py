"""Court and timeslot schemas, including availability views and admin payloads."""

from datetime import date
from typing import Dict, List, Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel

TIME_LABEL_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class CourtResponse(StrictModel):
    id: str
    name: str
    description: Optional[str] = None
    capacity: int
    is_active: bool


class TimeslotResponse(StrictModel):
    id: str
    time: str = Field(..., description="Start label, HH:MM")
    duration: int = Field(..., description="Minutes")
    is_active: bool


class TimeslotAvailabilityResponse(StrictModel):
    """``available_courts`` counts courts, not seats, and can go negative."""

    timeslot: TimeslotResponse
    booked_count: int
    available_courts: int
    available: bool


class CourtAvailabilityResponse(StrictModel):
    court: CourtResponse
    available: bool


class AvailableDatesResponse(StrictModel):
    dates: List[date]


class CourtCreate(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(..., gt=0)
    description: Optional[str] = Field(None, max_length=2000)


class CourtUpdate(StrictRequestModel):
    """Only non-empty fields are applied."""

    name: Optional[str] = Field(None, max_length=255)
    capacity: Optional[int] = Field(None, gt=0)
    description: Optional[str] = Field(None, max_length=2000)
    is_active: Optional[bool] = None


class TimeslotCreate(StrictRequestModel):
    time: str = Field(..., pattern=TIME_LABEL_PATTERN)
    duration: int = Field(..., gt=0, le=24 * 60)


class TimeslotUpdate(StrictRequestModel):
    time: Optional[str] = Field(None, pattern=TIME_LABEL_PATTERN)
    duration: Optional[int] = Field(None, gt=0, le=24 * 60)
    is_active: Optional[bool] = None


class StatsResponse(StrictModel):
    total_courts: int
    total_timeslots: int
    reservations_by_status: Dict[str, int]
