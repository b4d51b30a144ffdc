"""
Service layer dependencies for dependency injection.

Each request gets service instances bound to its own database session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...integrations.midtrans_client import PaymentGateway, get_payment_gateway
from ...services.availability_service import AvailabilityService
from ...services.catalog_service import CatalogService
from ...services.payment_service import PaymentService
from ...services.reconciliation_service import ReconciliationService
from ...services.reservation_lifecycle import ReservationLifecycleService
from ...services.reservation_service import ReservationService
from .database import get_db


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_reservation_service(db: Session = Depends(get_db)) -> ReservationService:
    return ReservationService(db)


def get_lifecycle_service(db: Session = Depends(get_db)) -> ReservationLifecycleService:
    return ReservationLifecycleService(db)


def get_payment_gateway_dep() -> PaymentGateway:
    return get_payment_gateway()


def get_payment_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway_dep),
) -> PaymentService:
    return PaymentService(db, gateway=gateway)


def get_reconciliation_service(db: Session = Depends(get_db)) -> ReconciliationService:
    return ReconciliationService(db)
