# backend/reservation_api/services/reconciliation_service.py
"""
Reconciliation coordinator.

Applies gateway status events to a payment and its reservation as one
unit: both rows change in the same transaction, under the slot lock of
the reservation, with the payment row locked. The payment status is the
record of truth; replaying an event re-derives the reservation from it.

Gateway codes:

* ``capture``, ``settlement``: payment paid, reservation confirmed
* ``pending``: nothing changes
* ``deny``, ``expire``, ``cancel``: payment failed, reservation cancelled
* anything else: ignored

Settle and fail events for a pending checkout past its ``expired_at`` are
ignored; the checkout is reissued on the next payment attempt.
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import PaymentNotFoundException
from ..core.slot_lock import slot_lock
from ..models.payment import Payment
from ..models.webhook_event import WebhookEventStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .reservation_lifecycle import ReservationLifecycleService
from .webhook_ledger_service import WebhookLedgerService

GATEWAY_SOURCE = "midtrans"

SETTLED_CODES = frozenset({"capture", "settlement"})
PENDING_CODES = frozenset({"pending"})
FAILED_CODES = frozenset({"deny", "expire", "cancel"})

OUTCOME_PROCESSED = "processed"
OUTCOME_IGNORED = "ignored"


@dataclass
class ReconciliationResult:
    transaction_id: str
    status_code: str
    outcome: str
    payment_id: Optional[str] = None
    payment_status: Optional[str] = None
    reservation_id: Optional[str] = None
    reservation_status: Optional[str] = None


def classify_status_code(status_code: str) -> str:
    code = (status_code or "").strip().lower()
    if code in SETTLED_CODES:
        return "settle"
    if code in FAILED_CODES:
        return "fail"
    if code in PENDING_CODES:
        return "pending"
    return "ignore"


class ReconciliationService(BaseService):
    def __init__(
        self,
        db: Session,
        lifecycle_service: Optional[ReservationLifecycleService] = None,
        ledger_service: Optional[WebhookLedgerService] = None,
    ):
        super().__init__(db)
        self.lifecycle_service = lifecycle_service or ReservationLifecycleService(db)
        self.ledger_service = ledger_service or WebhookLedgerService(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)

    def _result(self, payment: Payment, status_code: str, outcome: str) -> ReconciliationResult:
        reservation = self.reservation_repository.get_by_id(payment.reservation_id)
        return ReconciliationResult(
            transaction_id=payment.transaction_id,
            status_code=status_code,
            outcome=outcome,
            payment_id=payment.id,
            payment_status=payment.status,
            reservation_id=payment.reservation_id,
            reservation_status=reservation.status if reservation else None,
        )

    def _audit_payment(self, payment: Payment, action: str, from_status: str, status_code: str) -> None:
        self.audit_repository.record_transition(
            "payment",
            payment.id,
            action,
            from_status=from_status,
            to_status=payment.status,
            actor_role="gateway",
            trigger=f"gateway:{status_code}",
            extra={"transaction_id": payment.transaction_id},
        )

    def _settle(self, payment: Payment, status_code: str) -> str:
        if payment.is_pending():
            from_status = payment.status
            payment.mark_paid()
            self.payment_repository.flush()
            self._audit_payment(payment, "payment.paid", from_status, status_code)
        elif not payment.is_paid():
            self.logger.warning(
                "Settlement for terminal payment ignored",
                extra={"transaction_id": payment.transaction_id, "status": payment.status},
            )
            return OUTCOME_IGNORED
        self.lifecycle_service.confirm(payment.reservation_id, trigger=f"gateway:{status_code}")
        return OUTCOME_PROCESSED

    def _fail(self, payment: Payment, status_code: str) -> str:
        if payment.is_pending():
            from_status = payment.status
            payment.mark_failed()
            self.payment_repository.flush()
            self._audit_payment(payment, "payment.failed", from_status, status_code)
        elif payment.is_paid():
            self.logger.warning(
                "Failure event for paid payment ignored",
                extra={"transaction_id": payment.transaction_id, "status_code": status_code},
            )
            return OUTCOME_IGNORED
        self.lifecycle_service.cancel_by_payment_failure(
            payment.reservation_id, trigger=f"gateway:{status_code}"
        )
        return OUTCOME_PROCESSED

    @BaseService.measure_operation("apply_gateway_event")
    def apply_gateway_event(self, transaction_id: str, status_code: str) -> ReconciliationResult:
        """
        Apply one gateway status event.

        Safe to call repeatedly with the same event.

        Raises:
            PaymentNotFoundException: No payment carries ``transaction_id``
            SlotBusyException: Slot lock not acquired in time
            StoreUnavailableException: Store failure; nothing was changed
        """
        payment = self.payment_repository.get_by_transaction_id(transaction_id)
        if payment is None:
            self.logger.warning(
                "Gateway event for unknown transaction",
                extra={"transaction_id": transaction_id, "status_code": status_code},
            )
            raise PaymentNotFoundException(transaction_id)

        action = classify_status_code(status_code)
        if action == "ignore":
            self.logger.info(
                "Unhandled gateway status ignored",
                extra={"transaction_id": transaction_id, "status_code": status_code},
            )
            return self._result(payment, status_code, OUTCOME_IGNORED)
        if action == "pending":
            return self._result(payment, status_code, OUTCOME_PROCESSED)

        reservation = self.reservation_repository.get_by_id(payment.reservation_id)
        with slot_lock(*reservation.slot_key):
            with self.transaction():
                self.reservation_repository.lock_slot(*reservation.slot_key)
                payment = self.payment_repository.get_by_transaction_id(
                    transaction_id, for_update=True
                )
                if payment is None:
                    # Checkout reissued under a new transaction id since the first read.
                    self.logger.warning(
                        "Gateway event for superseded transaction",
                        extra={"transaction_id": transaction_id, "status_code": status_code},
                    )
                    raise PaymentNotFoundException(transaction_id)
                if payment.is_pending() and payment.is_expired():
                    self.logger.warning(
                        "Gateway event for expired checkout ignored",
                        extra={"transaction_id": transaction_id, "status_code": status_code},
                    )
                    outcome = OUTCOME_IGNORED
                elif action == "settle":
                    outcome = self._settle(payment, status_code)
                else:
                    outcome = self._fail(payment, status_code)
                result = self._result(payment, status_code, outcome)

        self.log_operation(
            "apply_gateway_event",
            transaction_id=transaction_id,
            status_code=status_code,
            outcome=outcome,
            payment_status=result.payment_status,
            reservation_status=result.reservation_status,
        )
        return result

    @BaseService.measure_operation("process_callback")
    def process_callback(
        self, transaction_id: str, status_code: str, payload: Dict[str, Any]
    ) -> ReconciliationResult:
        """
        Record a gateway callback in the ledger, apply it, and record the outcome.
        """
        started = time.monotonic()
        with self.transaction():
            event = self.ledger_service.log_received(
                source=GATEWAY_SOURCE,
                event_type=status_code or "unknown",
                event_id=f"{transaction_id}:{status_code}",
                payload=payload,
            )

        try:
            result = self.apply_gateway_event(transaction_id, status_code)
        except PaymentNotFoundException as exc:
            with self.transaction():
                self.ledger_service.mark_failed(
                    event,
                    error=exc.message,
                    duration_ms=int((time.monotonic() - started) * 1000),
                    status=WebhookEventStatus.NOT_FOUND,
                )
            prometheus_metrics.record_gateway_event(status_code, WebhookEventStatus.NOT_FOUND)
            raise
        except Exception as exc:
            with self.transaction():
                self.ledger_service.mark_failed(
                    event,
                    error=str(exc),
                    duration_ms=int((time.monotonic() - started) * 1000),
                )
            prometheus_metrics.record_gateway_event(status_code, WebhookEventStatus.FAILED)
            raise

        with self.transaction():
            self.ledger_service.mark_processed(
                event,
                related_entity_type="payment",
                related_entity_id=result.payment_id,
                duration_ms=int((time.monotonic() - started) * 1000),
                status=result.outcome,
            )
        prometheus_metrics.record_gateway_event(status_code, result.outcome)
        return result
