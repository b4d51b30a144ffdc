# backend/reservation_api/services/availability_service.py
"""
Availability calculator.

Two views with different semantics:

* ``timeslot_availability`` compares the number of non-cancelled
  reservations for a timeslot, across all courts, with the number of active
  courts. Capacity is not consulted.
* ``court_availability`` marks a court unavailable as soon as it holds one
  non-cancelled reservation for the timeslot and date.

Neither view is an admission decision; admission applies the capacity rule.
"""

from datetime import date
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import parse_calendar_date, upcoming_dates
from .base import BaseService


class AvailabilityService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.court_repository = RepositoryFactory.create_court_repository(db)
        self.timeslot_repository = RepositoryFactory.create_timeslot_repository(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)

    @BaseService.measure_operation("timeslot_availability")
    def timeslot_availability(self, date_value: Any) -> List[Dict[str, Any]]:
        """
        Per active timeslot on ``date_value``.

        Returns:
            Dicts with ``timeslot``, ``booked_count``, ``available_courts`` and
            ``available``. ``available_courts`` may go negative.

        Raises:
            InvalidDateException: If the date is not YYYY-MM-DD
        """
        slot_date = parse_calendar_date(date_value)
        timeslots = self.timeslot_repository.list_active()
        active_courts = self.court_repository.count_active()
        booked = self.reservation_repository.count_booked_by_timeslot(slot_date)

        results = []
        for timeslot in timeslots:
            booked_count = booked.get(timeslot.id, 0)
            available_courts = active_courts - booked_count
            results.append(
                {
                    "timeslot": timeslot,
                    "booked_count": booked_count,
                    "available_courts": available_courts,
                    "available": available_courts > 0,
                }
            )
        return results

    @BaseService.measure_operation("court_availability")
    def court_availability(self, date_value: Any, timeslot_id: str) -> List[Dict[str, Any]]:
        """
        Per active court for one timeslot on ``date_value``.

        The timeslot is not looked up; an unknown id simply has no bookings.

        Raises:
            InvalidDateException: If the date is not YYYY-MM-DD
        """
        slot_date = parse_calendar_date(date_value)
        courts = self.court_repository.list_active()
        booked_ids = self.reservation_repository.get_booked_court_ids(slot_date, timeslot_id)
        return [{"court": court, "available": court.id not in booked_ids} for court in courts]

    def available_dates(self) -> List[date]:
        return upcoming_dates()
