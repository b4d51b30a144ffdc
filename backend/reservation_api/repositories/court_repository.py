"""Data access for courts."""

from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.court import Court
from .base_repository import BaseRepository


class CourtRepository(BaseRepository[Court]):
    def __init__(self, db: Session):
        super().__init__(db, Court)

    def list_active(self) -> List[Court]:
        return self._execute_query(
            self.db.query(Court).filter(Court.is_active.is_(True)).order_by(Court.name, Court.id)
        )

    def list_all(self) -> List[Court]:
        return self._execute_query(self.db.query(Court).order_by(Court.name, Court.id))

    def count_active(self) -> int:
        try:
            return self.db.query(Court).filter(Court.is_active.is_(True)).count()
        except SQLAlchemyError as e:
            self.logger.error("Error counting active courts: %s", e)
            raise RepositoryException(f"Failed to count active courts: {e}") from e
