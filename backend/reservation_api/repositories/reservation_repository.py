# backend/reservation_api/repositories/reservation_repository.py
"""
Reservation Repository

Queries behind admission, availability and reservation listings. The slot
counting queries here are only meaningful as admission inputs while the
caller holds the slot lock inside its transaction.
"""

from datetime import date
import hashlib
from typing import Dict, List, Optional, Set

from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..database.session_utils import is_postgres
from ..models.reservation import Reservation, ReservationStatus
from .base_repository import BaseRepository

_CANCELLED = ReservationStatus.CANCELLED.value
_CONFIRMED = ReservationStatus.CONFIRMED.value


def advisory_lock_id(court_id: str, timeslot_id: str, slot_date: date) -> int:
    """Stable signed 64-bit key for ``pg_advisory_xact_lock``."""
    digest = hashlib.blake2b(
        f"{court_id}:{timeslot_id}:{slot_date.isoformat()}".encode("utf-8"), digest_size=8
    ).digest()
    return int.from_bytes(digest, "big", signed=True)


class ReservationRepository(BaseRepository[Reservation]):
    def __init__(self, db: Session):
        super().__init__(db, Reservation)

    def _with_details(self):
        return self.db.query(Reservation).options(
            joinedload(Reservation.court),
            joinedload(Reservation.timeslot),
            joinedload(Reservation.payment),
        )

    def lock_slot(self, court_id: str, timeslot_id: str, slot_date: date) -> None:
        """
        Take a transaction-scoped advisory lock for the slot on PostgreSQL.

        Released automatically at commit or rollback. Other dialects rely on
        the application slot lock alone.
        """
        if not is_postgres(self.db):
            return
        try:
            self.db.execute(
                text("SELECT pg_advisory_xact_lock(:lock_id)"),
                {"lock_id": advisory_lock_id(court_id, timeslot_id, slot_date)},
            )
        except SQLAlchemyError as e:
            self.logger.error("Error taking advisory lock for slot: %s", e)
            raise RepositoryException(f"Failed to lock slot: {e}") from e

    def get_for_update(self, reservation_id: str) -> Optional[Reservation]:
        return self.get_by_id(reservation_id, for_update=True)

    def get_with_details(self, reservation_id: str) -> Optional[Reservation]:
        try:
            return self._with_details().filter(Reservation.id == reservation_id).first()
        except SQLAlchemyError as e:
            self.logger.error("Error loading reservation %s: %s", reservation_id, e)
            raise RepositoryException(f"Failed to retrieve Reservation: {e}") from e

    # Slot occupancy

    def count_confirmed_in_slot(self, court_id: str, timeslot_id: str, slot_date: date) -> int:
        """Reservations occupying a seat: only CONFIRMED ones count."""
        try:
            return (
                self.db.query(func.count(Reservation.id))
                .filter(
                    Reservation.court_id == court_id,
                    Reservation.timeslot_id == timeslot_id,
                    Reservation.date == slot_date,
                    Reservation.status == _CONFIRMED,
                )
                .scalar()
                or 0
            )
        except SQLAlchemyError as e:
            self.logger.error("Error counting confirmed reservations: %s", e)
            raise RepositoryException(f"Failed to count reservations: {e}") from e

    def count_booked_by_timeslot(self, slot_date: date) -> Dict[str, int]:
        """Non-cancelled reservation counts on ``slot_date`` keyed by timeslot id."""
        try:
            rows = (
                self.db.query(Reservation.timeslot_id, func.count(Reservation.id))
                .filter(Reservation.date == slot_date, Reservation.status != _CANCELLED)
                .group_by(Reservation.timeslot_id)
                .all()
            )
            return {timeslot_id: count for timeslot_id, count in rows}
        except SQLAlchemyError as e:
            self.logger.error("Error counting booked reservations by timeslot: %s", e)
            raise RepositoryException(f"Failed to count reservations: {e}") from e

    def get_booked_court_ids(self, slot_date: date, timeslot_id: str) -> Set[str]:
        try:
            rows = (
                self.db.query(Reservation.court_id)
                .filter(
                    Reservation.date == slot_date,
                    Reservation.timeslot_id == timeslot_id,
                    Reservation.status != _CANCELLED,
                )
                .distinct()
                .all()
            )
            return {row[0] for row in rows}
        except SQLAlchemyError as e:
            self.logger.error("Error loading booked courts: %s", e)
            raise RepositoryException(f"Failed to load booked courts: {e}") from e

    # Listings

    def find_by_user(self, user_id: str) -> List[Reservation]:
        return self._execute_query(
            self._with_details()
            .filter(Reservation.user_id == user_id)
            .order_by(Reservation.date.desc(), Reservation.created_at.desc(), Reservation.id.desc())
        )

    def find_upcoming_by_user(self, user_id: str, today: date) -> List[Reservation]:
        return self._execute_query(
            self._with_details()
            .filter(
                Reservation.user_id == user_id,
                Reservation.date >= today,
                Reservation.status != _CANCELLED,
            )
            .order_by(Reservation.date.asc(), Reservation.id.asc())
        )

    def find_past_by_user(self, user_id: str, today: date) -> List[Reservation]:
        return self._execute_query(
            self._with_details()
            .filter(Reservation.user_id == user_id, Reservation.date < today)
            .order_by(Reservation.date.desc(), Reservation.id.desc())
        )

    def count_by_status(self) -> Dict[str, int]:
        try:
            rows = (
                self.db.query(Reservation.status, func.count(Reservation.id))
                .group_by(Reservation.status)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error counting reservations by status: %s", e)
            raise RepositoryException(f"Failed to count reservations: {e}") from e
        counts = {status.value: 0 for status in ReservationStatus}
        counts.update({status: count for status, count in rows})
        return counts
