"""Data access for payments."""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.payment import Payment
from .base_repository import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session):
        super().__init__(db, Payment)

    def get_by_transaction_id(
        self, transaction_id: str, for_update: bool = False
    ) -> Optional[Payment]:
        try:
            query = self.db.query(Payment).filter(Payment.transaction_id == transaction_id)
            if for_update:
                query = query.with_for_update().populate_existing()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error("Error getting payment by transaction id %s: %s", transaction_id, e)
            raise RepositoryException(f"Failed to retrieve Payment: {e}") from e

    def get_by_reservation_id(
        self, reservation_id: str, for_update: bool = False
    ) -> Optional[Payment]:
        try:
            query = self.db.query(Payment).filter(Payment.reservation_id == reservation_id)
            if for_update:
                query = query.with_for_update().populate_existing()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error("Error getting payment for reservation %s: %s", reservation_id, e)
            raise RepositoryException(f"Failed to retrieve Payment: {e}") from e
