# backend/reservation_api/repositories/factory.py
"""
Repository Factory

Centralizes repository creation so services never construct repositories
with a different session than their own.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from .audit_repository import AuditRepository
    from .court_repository import CourtRepository
    from .payment_repository import PaymentRepository
    from .reservation_repository import ReservationRepository
    from .timeslot_repository import TimeslotRepository
    from .webhook_event_repository import WebhookEventRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_court_repository(db: Session) -> "CourtRepository":
        from .court_repository import CourtRepository

        return CourtRepository(db)

    @staticmethod
    def create_timeslot_repository(db: Session) -> "TimeslotRepository":
        from .timeslot_repository import TimeslotRepository

        return TimeslotRepository(db)

    @staticmethod
    def create_reservation_repository(db: Session) -> "ReservationRepository":
        from .reservation_repository import ReservationRepository

        return ReservationRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> "PaymentRepository":
        from .payment_repository import PaymentRepository

        return PaymentRepository(db)

    @staticmethod
    def create_audit_repository(db: Session) -> "AuditRepository":
        from .audit_repository import AuditRepository

        return AuditRepository(db)

    @staticmethod
    def create_webhook_event_repository(db: Session) -> "WebhookEventRepository":
        from .webhook_event_repository import WebhookEventRepository

        return WebhookEventRepository(db)
