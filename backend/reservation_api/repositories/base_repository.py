# backend/reservation_api/repositories/base_repository.py
"""
Base repository for the reservation service.

Repositories own every query against the store. They flush so generated
ids are visible, but never commit: the calling service decides the
transaction boundary.
"""

import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Common data access for a single model.

    Attributes:
        db: SQLAlchemy session owned by the calling service
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def get_by_id(self, id: str, for_update: bool = False) -> Optional[T]:
        """
        Retrieve an entity by primary key.

        ``for_update`` takes a row lock where the dialect supports it; SQLite
        ignores it and relies on its single-writer lock. Locked reads always
        reload the row, even if the session already holds it.
        """
        try:
            query = self.db.query(self.model).filter(self.model.id == id)
            if for_update:
                query = query.with_for_update().populate_existing()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error("Error getting %s by id %s: %s", self.model.__name__, id, e)
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {e}") from e

    def create(self, **kwargs: Any) -> T:
        """
        Create and flush a new entity.

        Raises:
            RepositoryException: On constraint violations or store failures
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError as exc:
            self.logger.error("Integrity error creating %s: %s", self.model.__name__, exc)
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.logger.error("Error creating %s: %s", self.model.__name__, e)
            raise RepositoryException(f"Failed to create {self.model.__name__}: {e}") from e

    def update(self, id: str, **kwargs: Any) -> Optional[T]:
        """Set the given attributes on an existing entity; None when it does not exist."""
        try:
            entity = self.get_by_id(id)
            if not entity:
                return None
            for key, value in kwargs.items():
                if hasattr(entity, key):
                    setattr(entity, key, value)
            self.db.flush()
            return entity
        except SQLAlchemyError as e:
            self.logger.error("Error updating %s %s: %s", self.model.__name__, id, e)
            raise RepositoryException(f"Failed to update {self.model.__name__}: {e}") from e

    def flush(self) -> None:
        self.db.flush()

    def refresh(self, instance: T) -> None:
        self.db.refresh(instance)

    def exists(self, **kwargs: Any) -> bool:
        try:
            return self.db.query(self.model).filter_by(**kwargs).first() is not None
        except SQLAlchemyError as e:
            self.logger.error("Error checking existence: %s", e)
            raise RepositoryException(f"Failed to check existence: {e}") from e

    def count(self, **kwargs: Any) -> int:
        try:
            return self.db.query(self.model).filter_by(**kwargs).count()
        except SQLAlchemyError as e:
            self.logger.error("Error counting records: %s", e)
            raise RepositoryException(f"Failed to count records: {e}") from e

    def _execute_query(self, query: Query) -> List[T]:
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error("Error executing %s query: %s", self.model.__name__, e)
            raise RepositoryException(f"Failed to execute query: {e}") from e
