"""Data access for daily timeslots."""

from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.timeslot import Timeslot
from .base_repository import BaseRepository


class TimeslotRepository(BaseRepository[Timeslot]):
    def __init__(self, db: Session):
        super().__init__(db, Timeslot)

    def list_active(self) -> List[Timeslot]:
        """Active timeslots in start-time order (``HH:MM`` sorts lexically)."""
        return self._execute_query(
            self.db.query(Timeslot)
            .filter(Timeslot.is_active.is_(True))
            .order_by(Timeslot.time, Timeslot.id)
        )

    def list_all(self) -> List[Timeslot]:
        return self._execute_query(self.db.query(Timeslot).order_by(Timeslot.time, Timeslot.id))

    def count_active(self) -> int:
        try:
            return self.db.query(Timeslot).filter(Timeslot.is_active.is_(True)).count()
        except SQLAlchemyError as e:
            self.logger.error("Error counting active timeslots: %s", e)
            raise RepositoryException(f"Failed to count active timeslots: {e}") from e
