# backend/reservation_api/services/payment_service.py
"""
Payment initiation.

Creating the payment row and talking to the gateway are separate steps:
the row is committed first, the gateway is called with no transaction or
lock held, and the checkout handles are stored afterwards. A gateway
failure therefore leaves a pending payment behind that the next
``initiate`` call reuses.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
import time
from typing import Optional
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    AlreadyPaidException,
    ConflictException,
    GatewayUnavailableException,
    NotFoundException,
    OwnershipException,
    RepositoryException,
    ReservationCancelledException,
)
from ..integrations.midtrans_client import (
    CheckoutRequest,
    PaymentGateway,
    PaymentGatewayError,
    get_payment_gateway,
)
from ..models.payment import Payment, PaymentStatus
from ..models.reservation import Reservation
from ..repositories.factory import RepositoryFactory
from .base import BaseService


def generate_transaction_id() -> str:
    """``TRX-<8 hex>-<unix seconds>``; the uuid part keeps ids unique within a second."""
    return f"TRX-{uuid.uuid4().hex[:8]}-{int(time.time())}"


class PaymentService(BaseService):
    def __init__(self, db: Session, gateway: Optional[PaymentGateway] = None):
        super().__init__(db)
        self.gateway = gateway or get_payment_gateway()
        self.payment_repository = RepositoryFactory.create_payment_repository(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)

    def _get_owned_reservation(self, reservation_id: str, user_id: str) -> Reservation:
        reservation = self.reservation_repository.get_with_details(reservation_id)
        if reservation is None:
            raise NotFoundException(
                "Reservation not found",
                code="NOT_FOUND",
                details={"reservation_id": reservation_id},
            )
        if reservation.user_id != user_id:
            raise OwnershipException("reservation")
        return reservation

    def _prepare_payment(self, reservation_id: str, user_id: str) -> tuple[Payment, bool]:
        """
        Create or reuse the reservation's payment row.

        Returns the payment and whether it still needs checkout handles from
        the gateway. Must run inside a transaction.
        """
        reservation = self.reservation_repository.get_for_update(reservation_id)
        if reservation is None:
            raise NotFoundException(
                "Reservation not found",
                code="NOT_FOUND",
                details={"reservation_id": reservation_id},
            )
        if reservation.is_cancelled():
            raise ReservationCancelledException(reservation_id)

        payment = self.payment_repository.get_by_reservation_id(reservation_id, for_update=True)
        if payment is None:
            try:
                payment = self.payment_repository.create(
                    reservation_id=reservation_id,
                    amount=Decimal(str(settings.session_price)),
                    status=PaymentStatus.PENDING.value,
                    transaction_id=generate_transaction_id(),
                )
            except RepositoryException as exc:
                if isinstance(exc.__cause__, IntegrityError):
                    raise ConflictException(
                        "A payment for this reservation is already being created",
                        code="PAYMENT_IN_PROGRESS",
                        details={"reservation_id": reservation_id},
                    ) from exc
                raise
            self.audit_repository.record_transition(
                "payment",
                payment.id,
                "payment.create",
                from_status=None,
                to_status=payment.status,
                actor_id=user_id,
                actor_role="user",
                trigger="initiate",
                extra={"transaction_id": payment.transaction_id},
            )
            return payment, True

        if payment.is_paid():
            raise AlreadyPaidException(reservation_id)
        if payment.is_terminal():
            # Failed or expired payments already cancelled their reservation.
            raise ReservationCancelledException(reservation_id)

        if payment.is_expired():
            previous = payment.transaction_id
            payment.transaction_id = generate_transaction_id()
            payment.gateway_token = None
            payment.gateway_redirect_url = None
            payment.expired_at = None
            self.payment_repository.flush()
            self.audit_repository.record_transition(
                "payment",
                payment.id,
                "payment.reissue",
                from_status=payment.status,
                to_status=payment.status,
                actor_id=user_id,
                actor_role="user",
                trigger="checkout_expired",
                extra={"previous_transaction_id": previous, "transaction_id": payment.transaction_id},
            )
            return payment, True

        return payment, not (payment.gateway_token and payment.gateway_redirect_url)

    def _checkout_request(self, reservation: Reservation, payment: Payment) -> CheckoutRequest:
        user = reservation.user
        return CheckoutRequest(
            transaction_id=payment.transaction_id,
            amount=payment.amount,
            customer_name=user.name,
            customer_email=user.email,
            customer_phone=user.phone or settings.default_payer_phone,
            item_id=f"COURT-{reservation.court_id}",
            item_name=f"Pilates Class - {reservation.court.name} at {reservation.timeslot.time}",
        )

    @BaseService.measure_operation("initiate")
    def initiate(self, reservation_id: str, requesting_user_id: str) -> Payment:
        """
        Start (or resume) payment for a reservation.

        Raises:
            NotFoundException: Unknown reservation
            OwnershipException: Requester is not the owner
            ReservationCancelledException: Reservation is cancelled
            AlreadyPaidException: Reservation already has a paid payment
            GatewayUnavailableException: Gateway call failed; the pending payment is kept
        """
        reservation = self._get_owned_reservation(reservation_id, requesting_user_id)

        with self.transaction():
            payment, needs_checkout = self._prepare_payment(reservation_id, requesting_user_id)

        if not needs_checkout:
            return payment

        transaction_id = payment.transaction_id
        try:
            session = self.gateway.create_transaction(self._checkout_request(reservation, payment))
        except PaymentGatewayError as exc:
            self.logger.warning(
                "Gateway checkout failed; payment left pending",
                extra={
                    "payment_id": payment.id,
                    "transaction_id": transaction_id,
                    "error": str(exc),
                },
            )
            raise GatewayUnavailableException(
                "Failed to create payment transaction",
                details={"payment_id": payment.id, "transaction_id": transaction_id},
            ) from exc

        with self.transaction():
            payment = self.payment_repository.get_by_id(payment.id, for_update=True)
            # A concurrent initiate may have reissued the transaction meanwhile.
            if payment.is_pending() and payment.transaction_id == transaction_id:
                payment.gateway_token = session.token
                payment.gateway_redirect_url = session.redirect_url
                payment.expired_at = datetime.now(timezone.utc) + timedelta(
                    hours=settings.payment_expiry_hours
                )
                self.payment_repository.flush()

        self.log_operation(
            "initiate",
            reservation_id=reservation_id,
            payment_id=payment.id,
            transaction_id=payment.transaction_id,
        )
        return payment

    def get_payment_for_user(self, payment_id: str, user_id: str) -> Payment:
        """
        Raises:
            NotFoundException: Unknown payment
            OwnershipException: Payment's reservation belongs to someone else
        """
        payment = self.payment_repository.get_by_id(payment_id)
        if payment is None:
            raise NotFoundException(
                "Payment not found", code="NOT_FOUND", details={"payment_id": payment_id}
            )
        if payment.reservation.user_id != user_id:
            raise OwnershipException("payment")
        return payment
