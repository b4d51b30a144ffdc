"""FastAPI dependencies: database sessions, authentication and services."""

from .auth import get_current_admin, get_current_user
from .database import get_db
from .services import (
    get_availability_service,
    get_catalog_service,
    get_lifecycle_service,
    get_payment_service,
    get_reconciliation_service,
    get_reservation_service,
)

__all__ = [
    "get_availability_service",
    "get_catalog_service",
    "get_current_admin",
    "get_current_user",
    "get_db",
    "get_lifecycle_service",
    "get_payment_service",
    "get_reconciliation_service",
    "get_reservation_service",
]
