# backend/reservation_api/services/reservation_lifecycle.py
"""
Reservation state machine.

    pending ──confirm──────────────▶ confirmed ──complete──▶ completed
       │                               │
       └──cancel / payment failure──▶ cancelled ◀──cancel──┘

``cancel`` is the owner's action and manages its own transaction under the
slot lock. ``confirm`` and ``cancel_by_payment_failure`` belong to the
reconciliation coordinator: they run inside the coordinator's transaction,
while it holds the slot lock, and never commit on their own.
"""

from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    BusinessRuleException,
    NotCancellableException,
    NotFoundException,
    OwnershipException,
    PastReservationException,
)
from ..core.slot_lock import slot_lock
from ..models.reservation import Reservation
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import studio_today
from .base import BaseService

REASON_USER_CANCELLED = "user_cancelled"
REASON_PAYMENT_FAILED = "payment_failed"
REASON_SLOT_FULL_AT_SETTLEMENT = "slot_full_at_settlement"


class ReservationLifecycleService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.court_repository = RepositoryFactory.create_court_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)

    def _load_locked(self, reservation_id: str) -> Reservation:
        reservation = self.reservation_repository.get_for_update(reservation_id)
        if reservation is None:
            raise NotFoundException(
                "Reservation not found",
                code="NOT_FOUND",
                details={"reservation_id": reservation_id},
            )
        return reservation

    def _audit(
        self,
        reservation: Reservation,
        action: str,
        from_status: Optional[str],
        *,
        actor_id: Optional[str] = None,
        actor_role: str = "system",
        trigger: Optional[str] = None,
    ) -> None:
        self.audit_repository.record_transition(
            "reservation",
            reservation.id,
            action,
            from_status=from_status,
            to_status=reservation.status,
            actor_id=actor_id,
            actor_role=actor_role,
            trigger=trigger,
            extra={"cancellation_reason": reservation.cancellation_reason}
            if reservation.cancellation_reason
            else None,
        )

    @BaseService.measure_operation("cancel")
    def cancel(self, reservation_id: str, requesting_user_id: str) -> Reservation:
        """
        Cancel a reservation on behalf of its owner.

        The payment, if any, is left untouched.

        Raises:
            NotFoundException: Unknown reservation
            OwnershipException: Requester is not the owner
            NotCancellableException: Already cancelled or completed
            PastReservationException: The reservation date has passed
        """
        current = self.reservation_repository.get_by_id(reservation_id)
        if current is None:
            raise NotFoundException(
                "Reservation not found",
                code="NOT_FOUND",
                details={"reservation_id": reservation_id},
            )
        if current.user_id != requesting_user_id:
            raise OwnershipException("reservation")

        with slot_lock(*current.slot_key):
            with self.transaction():
                reservation = self._load_locked(reservation_id)
                if not reservation.can_be_cancelled():
                    raise NotCancellableException(reservation.id, reservation.status)
                if reservation.date < studio_today():
                    raise PastReservationException(reservation.id)

                from_status = reservation.status
                reservation.mark_cancelled(REASON_USER_CANCELLED)
                self.reservation_repository.flush()
                self._audit(
                    reservation,
                    "reservation.cancel",
                    from_status,
                    actor_id=requesting_user_id,
                    actor_role="user",
                    trigger=REASON_USER_CANCELLED,
                )

        self.log_operation("cancel", reservation_id=reservation_id, from_status=from_status)
        return reservation

    @BaseService.measure_operation("confirm")
    def confirm(self, reservation_id: str, *, trigger: str = "payment_settled") -> Reservation:
        """
        Move a pending reservation to confirmed once its payment settled.

        Replays are no-ops. A cancelled reservation stays cancelled. If the
        slot filled up while this reservation was pending, it is cancelled
        instead of over-committing the court; the settled payment then needs
        a refund.
        """
        reservation = self._load_locked(reservation_id)

        if reservation.is_confirmed() or reservation.is_completed():
            return reservation
        if reservation.is_cancelled():
            self.logger.warning(
                "Settlement for cancelled reservation ignored",
                extra={"reservation_id": reservation.id, "reason": reservation.cancellation_reason},
            )
            return reservation

        court = self.court_repository.get_by_id(reservation.court_id)
        occupied = self.reservation_repository.count_confirmed_in_slot(*reservation.slot_key)
        from_status = reservation.status

        if court is not None and occupied >= court.capacity:
            reservation.mark_cancelled(REASON_SLOT_FULL_AT_SETTLEMENT)
            self.reservation_repository.flush()
            self._audit(
                reservation,
                "reservation.cancel",
                from_status,
                actor_role="gateway",
                trigger=REASON_SLOT_FULL_AT_SETTLEMENT,
            )
            self.logger.warning(
                "Slot full at settlement; reservation cancelled and payment needs refund",
                extra={
                    "reservation_id": reservation.id,
                    "court_id": reservation.court_id,
                    "capacity": court.capacity,
                    "occupied": occupied,
                },
            )
            return reservation

        reservation.mark_confirmed()
        self.reservation_repository.flush()
        self._audit(reservation, "reservation.confirm", from_status, actor_role="gateway", trigger=trigger)
        return reservation

    @BaseService.measure_operation("cancel_by_payment_failure")
    def cancel_by_payment_failure(
        self, reservation_id: str, *, trigger: str = REASON_PAYMENT_FAILED
    ) -> Reservation:
        """Cancel without owner or date checks. Terminal reservations are left as they are."""
        reservation = self._load_locked(reservation_id)
        if reservation.is_terminal():
            return reservation

        from_status = reservation.status
        reservation.mark_cancelled(REASON_PAYMENT_FAILED)
        self.reservation_repository.flush()
        self._audit(reservation, "reservation.cancel", from_status, actor_role="gateway", trigger=trigger)
        return reservation

    @BaseService.measure_operation("complete")
    def complete(self, reservation_id: str) -> Reservation:
        """Mark a confirmed reservation as completed after its session took place."""
        with self.transaction():
            reservation = self._load_locked(reservation_id)
            if reservation.is_completed():
                return reservation
            if not reservation.is_confirmed():
                raise BusinessRuleException(
                    "Only confirmed reservations can be completed",
                    code="NOT_COMPLETABLE",
                    details={"reservation_id": reservation.id, "status": reservation.status},
                )
            from_status = reservation.status
            reservation.mark_completed()
            self.reservation_repository.flush()
            self._audit(reservation, "reservation.complete", from_status, trigger="session_finished")
        return reservation
