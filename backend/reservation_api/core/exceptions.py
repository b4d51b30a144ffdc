# backend/reservation_api/core/exceptions.py
"""
Domain-specific exceptions for the reservation service.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
Each carries a stable ``code`` so callers can tell error kinds apart
without parsing messages.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class InvalidDateException(ValidationException):
    """Raised when a calendar date cannot be parsed."""

    def __init__(self, value: Any):
        super().__init__(
            message="Invalid date format. Use YYYY-MM-DD",
            code="INVALID_INPUT",
            details={"date": str(value)},
        )


class InactiveException(BusinessRuleException):
    """Raised when a court or timeslot has been disabled."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(
            message=f"{kind.capitalize()} is not active",
            code="RESOURCE_INACTIVE" if kind == "court" else "WINDOW_INACTIVE",
            details={f"{kind}_id": entity_id},
        )


class OwnershipException(ForbiddenException):
    """Raised when a user touches a reservation or payment they do not own."""

    def __init__(self, entity: str = "reservation"):
        super().__init__(
            message=f"Unauthorized access to {entity}",
            code="UNAUTHORIZED",
        )


class CapacityExceededException(ConflictException):
    """Raised when a slot already holds as many confirmed reservations as its capacity."""

    def __init__(self, capacity: int, occupied: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="This class is already full. Please select another court or timeslot.",
            code="CAPACITY_EXCEEDED",
            details={"capacity": capacity, "occupied": occupied, **(details or {})},
        )


class PastDateException(BusinessRuleException):
    """Raised when booking a date before today."""

    def __init__(self, requested: Any):
        super().__init__(
            message="Cannot book past dates",
            code="PAST_DATE",
            details={"date": str(requested)},
        )


class PastReservationException(BusinessRuleException):
    """Raised when cancelling a reservation whose date has passed."""

    def __init__(self, reservation_id: str):
        super().__init__(
            message="Cannot cancel past reservations",
            code="PAST_RESERVATION",
            details={"reservation_id": reservation_id},
        )


class NotCancellableException(BusinessRuleException):
    """Raised when a reservation is already in a terminal state."""

    def __init__(self, reservation_id: str, current_status: str):
        super().__init__(
            message="Reservation cannot be cancelled",
            code="NOT_CANCELLABLE",
            details={"reservation_id": reservation_id, "status": current_status},
        )


class ReservationCancelledException(BusinessRuleException):
    """Raised when paying for a cancelled reservation."""

    def __init__(self, reservation_id: str):
        super().__init__(
            message="Cannot pay for cancelled reservation",
            code="RESERVATION_CANCELLED",
            details={"reservation_id": reservation_id},
        )


class AlreadyPaidException(ConflictException):
    """Raised when a reservation already has a settled payment."""

    def __init__(self, reservation_id: str):
        super().__init__(
            message="Reservation already paid",
            code="ALREADY_PAID",
            details={"reservation_id": reservation_id},
        )


class PaymentNotFoundException(NotFoundException):
    """Raised when a gateway event references an unknown transaction id."""

    def __init__(self, transaction_id: str):
        super().__init__(
            message="Payment not found",
            code="PAYMENT_NOT_FOUND",
            details={"transaction_id": transaction_id},
        )


class GatewayUnavailableException(ServiceException):
    """Raised when the payment gateway call fails or times out."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="GATEWAY_UNAVAILABLE",
            details=details or {},
        )


class StoreUnavailableException(ServiceException):
    """Raised when a store transaction fails; nothing from it was committed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message=message, code="STORE_UNAVAILABLE")


class SlotBusyException(ConflictException):
    """Raised when the slot lock could not be acquired in time."""

    def __init__(self, slot_key: str):
        super().__init__(
            message="This slot is being booked by someone else. Please retry.",
            code="SLOT_BUSY",
            details={"slot": slot_key},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
