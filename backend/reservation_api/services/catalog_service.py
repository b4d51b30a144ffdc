# backend/reservation_api/services/catalog_service.py
"""
Resource catalog: courts and their daily timeslots.

Reads always go to the store. Capacity is consulted at admission time, so
an edit here only affects admissions decided after it commits.
"""

import re
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, ValidationException
from ..models.court import Court
from ..models.timeslot import Timeslot
from ..repositories.factory import RepositoryFactory
from .base import BaseService

TIME_LABEL_REGEX = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class CatalogService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.court_repository = RepositoryFactory.create_court_repository(db)
        self.timeslot_repository = RepositoryFactory.create_timeslot_repository(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)

    # Reads

    @BaseService.measure_operation("list_active")
    def list_active(self) -> List[Court]:
        return self.court_repository.list_active()

    @BaseService.measure_operation("list_active_windows")
    def list_active_windows(self) -> List[Timeslot]:
        return self.timeslot_repository.list_active()

    def get_resource(self, court_id: str, for_update: bool = False) -> Court:
        court = self.court_repository.get_by_id(court_id, for_update=for_update)
        if court is None:
            raise NotFoundException("Court not found", code="NOT_FOUND", details={"court_id": court_id})
        return court

    def get_window(self, timeslot_id: str, for_update: bool = False) -> Timeslot:
        timeslot = self.timeslot_repository.get_by_id(timeslot_id, for_update=for_update)
        if timeslot is None:
            raise NotFoundException(
                "Timeslot not found", code="NOT_FOUND", details={"timeslot_id": timeslot_id}
            )
        return timeslot

    def list_all_courts(self) -> List[Court]:
        return self.court_repository.list_all()

    def list_all_windows(self) -> List[Timeslot]:
        return self.timeslot_repository.list_all()

    # Administration

    @staticmethod
    def _require_positive(field: str, value: int) -> None:
        if value <= 0:
            raise ValidationException(
                f"{field.capitalize()} must be greater than 0",
                code="INVALID_INPUT",
                details={field: value},
            )

    @staticmethod
    def _require_time_label(value: str) -> None:
        if not TIME_LABEL_REGEX.match(value or ""):
            raise ValidationException(
                "Invalid time format. Use HH:MM", code="INVALID_INPUT", details={"time": value}
            )

    @BaseService.measure_operation("create_court")
    def create_court(self, name: str, capacity: int, description: Optional[str] = None) -> Court:
        self._require_positive("capacity", capacity)
        with self.transaction():
            court = self.court_repository.create(
                name=name, capacity=capacity, description=description, is_active=True
            )
        self.log_operation("create_court", court_id=court.id, capacity=capacity)
        return court

    @BaseService.measure_operation("update_court")
    def update_court(self, court_id: str, **changes: Any) -> Court:
        """Apply only the non-empty fields of ``changes``."""
        updates = {key: value for key, value in changes.items() if value not in (None, "")}
        if "capacity" in updates:
            self._require_positive("capacity", updates["capacity"])
        with self.transaction():
            court = self.court_repository.update(court_id, **updates)
            if court is None:
                raise NotFoundException(
                    "Court not found", code="NOT_FOUND", details={"court_id": court_id}
                )
        self.log_operation("update_court", court_id=court_id, fields=sorted(updates))
        return court

    @BaseService.measure_operation("deactivate_court")
    def deactivate_court(self, court_id: str) -> Court:
        """Soft delete: existing reservations keep pointing at the court."""
        return self.update_court(court_id, is_active=False)

    @BaseService.measure_operation("create_timeslot")
    def create_timeslot(self, time: str, duration: int) -> Timeslot:
        self._require_time_label(time)
        self._require_positive("duration", duration)
        with self.transaction():
            timeslot = self.timeslot_repository.create(time=time, duration=duration, is_active=True)
        self.log_operation("create_timeslot", timeslot_id=timeslot.id, time=time)
        return timeslot

    @BaseService.measure_operation("update_timeslot")
    def update_timeslot(self, timeslot_id: str, **changes: Any) -> Timeslot:
        updates = {key: value for key, value in changes.items() if value not in (None, "")}
        if "time" in updates:
            self._require_time_label(updates["time"])
        if "duration" in updates:
            self._require_positive("duration", updates["duration"])
        with self.transaction():
            timeslot = self.timeslot_repository.update(timeslot_id, **updates)
            if timeslot is None:
                raise NotFoundException(
                    "Timeslot not found", code="NOT_FOUND", details={"timeslot_id": timeslot_id}
                )
        self.log_operation("update_timeslot", timeslot_id=timeslot_id, fields=sorted(updates))
        return timeslot

    @BaseService.measure_operation("deactivate_timeslot")
    def deactivate_timeslot(self, timeslot_id: str) -> Timeslot:
        return self.update_timeslot(timeslot_id, is_active=False)

    @BaseService.measure_operation("get_statistics")
    def get_statistics(self) -> Dict[str, Any]:
        return {
            "total_courts": self.court_repository.count_active(),
            "total_timeslots": self.timeslot_repository.count_active(),
            "reservations_by_status": self.reservation_repository.count_by_status(),
        }
