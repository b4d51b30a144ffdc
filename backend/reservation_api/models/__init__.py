"""
Database models for the reservation service.

- Catalog: courts and daily timeslots
- Reservations and their gateway payments
- Users (credentials are owned by the identity provider)
- Audit trail and gateway callback ledger
"""

from .audit_log import AuditLog
from .court import Court
from .payment import TERMINAL_PAYMENT_STATUSES, Payment, PaymentStatus
from .reservation import TERMINAL_RESERVATION_STATUSES, Reservation, ReservationStatus
from .timeslot import Timeslot
from .user import User
from .webhook_event import WebhookEvent, WebhookEventStatus

__all__ = [
    "AuditLog",
    "Court",
    "Payment",
    "PaymentStatus",
    "Reservation",
    "ReservationStatus",
    "TERMINAL_PAYMENT_STATUSES",
    "TERMINAL_RESERVATION_STATUSES",
    "Timeslot",
    "User",
    "WebhookEvent",
    "WebhookEventStatus",
]
