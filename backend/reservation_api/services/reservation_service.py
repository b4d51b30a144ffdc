# backend/reservation_api/services/reservation_service.py
"""
Reservation admission and owner-scoped reads.

Admission checks and the insert for one (court, timeslot, date) slot run
under that slot's lock and inside a single transaction, so two requests for
the last seat can never both observe it free.
"""

from typing import Any, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    CapacityExceededException,
    InactiveException,
    NotFoundException,
    OwnershipException,
    PastDateException,
    ValidationException,
)
from ..core.slot_lock import slot_lock
from ..models.reservation import Reservation, ReservationStatus
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import parse_calendar_date, studio_today
from .base import BaseService
from .catalog_service import CatalogService

RESERVATION_SCOPES = ("all", "upcoming", "past")


class ReservationService(BaseService):
    def __init__(self, db: Session, catalog_service: Optional[CatalogService] = None):
        super().__init__(db)
        self.catalog_service = catalog_service or CatalogService(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)

    @BaseService.measure_operation("admit")
    def admit(
        self,
        user_id: str,
        court_id: str,
        timeslot_id: str,
        date: Any,
        notes: Optional[str] = None,
    ) -> Reservation:
        """
        Admit a new pending reservation.

        Only confirmed reservations occupy a seat, so pending reservations
        never block admission.

        Raises:
            InvalidDateException: Malformed date
            PastDateException: Date before today in the studio's timezone
            NotFoundException: Unknown court or timeslot
            InactiveException: Court or timeslot disabled
            CapacityExceededException: Confirmed reservations already fill the court
            SlotBusyException: Slot lock not acquired in time
            StoreUnavailableException: Store failure; nothing was created
        """
        slot_date = parse_calendar_date(date)
        if slot_date < studio_today():
            raise PastDateException(slot_date)

        with slot_lock(court_id, timeslot_id, slot_date):
            with self.transaction():
                self.reservation_repository.lock_slot(court_id, timeslot_id, slot_date)

                # Locked reads reload the rows; capacity edits apply from here on.
                court = self.catalog_service.get_resource(court_id, for_update=True)
                if not court.is_active:
                    raise InactiveException("court", court_id)

                timeslot = self.catalog_service.get_window(timeslot_id, for_update=True)
                if not timeslot.is_active:
                    raise InactiveException("timeslot", timeslot_id)

                occupied = self.reservation_repository.count_confirmed_in_slot(
                    court_id, timeslot_id, slot_date
                )
                if occupied >= court.capacity:
                    raise CapacityExceededException(
                        court.capacity,
                        occupied,
                        details={
                            "court_id": court_id,
                            "timeslot_id": timeslot_id,
                            "date": slot_date.isoformat(),
                        },
                    )

                reservation = self.reservation_repository.create(
                    user_id=user_id,
                    court_id=court_id,
                    timeslot_id=timeslot_id,
                    date=slot_date,
                    status=ReservationStatus.PENDING.value,
                    notes=notes,
                )
                self.audit_repository.record_transition(
                    "reservation",
                    reservation.id,
                    "reservation.create",
                    from_status=None,
                    to_status=reservation.status,
                    actor_id=user_id,
                    actor_role="user",
                    trigger="admission",
                )

        self.log_operation(
            "admit",
            reservation_id=reservation.id,
            court_id=court_id,
            timeslot_id=timeslot_id,
            date=slot_date.isoformat(),
            occupied=occupied,
            capacity=court.capacity,
        )
        return reservation

    def get_reservation_for_user(self, reservation_id: str, user_id: str) -> Reservation:
        """
        Raises:
            NotFoundException: Unknown reservation
            OwnershipException: Reservation belongs to someone else
        """
        reservation = self.reservation_repository.get_with_details(reservation_id)
        if reservation is None:
            raise NotFoundException(
                "Reservation not found",
                code="NOT_FOUND",
                details={"reservation_id": reservation_id},
            )
        if reservation.user_id != user_id:
            raise OwnershipException("reservation")
        return reservation

    @BaseService.measure_operation("list_for_user")
    def list_for_user(self, user_id: str, scope: str = "all") -> List[Reservation]:
        """
        List the user's own reservations.

        ``all`` is newest first; ``upcoming`` is today onward without
        cancelled ones, soonest first; ``past`` is before today, latest first.
        """
        if scope == "all":
            return self.reservation_repository.find_by_user(user_id)
        if scope == "upcoming":
            return self.reservation_repository.find_upcoming_by_user(user_id, studio_today())
        if scope == "past":
            return self.reservation_repository.find_past_by_user(user_id, studio_today())
        raise ValidationException(
            "Invalid scope", code="INVALID_INPUT", details={"scope": scope, "allowed": RESERVATION_SCOPES}
        )
