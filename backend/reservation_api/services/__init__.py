"""Service layer for the reservation service."""

from .availability_service import AvailabilityService
from .base import BaseService
from .catalog_service import CatalogService
from .payment_service import PaymentService
from .reconciliation_service import ReconciliationService
from .reservation_lifecycle import ReservationLifecycleService
from .reservation_service import ReservationService
from .webhook_ledger_service import WebhookLedgerService

__all__ = [
    "AvailabilityService",
    "BaseService",
    "CatalogService",
    "PaymentService",
    "ReconciliationService",
    "ReservationLifecycleService",
    "ReservationService",
    "WebhookLedgerService",
]
