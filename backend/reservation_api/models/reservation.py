# backend/reservation_api/models/reservation.py
"""
Reservation model.

A reservation holds one seat request for a (court, timeslot, date) slot.
It is admitted as PENDING and only occupies capacity once CONFIRMED by a
settled payment. CANCELLED and COMPLETED are terminal.
"""

from datetime import date as date_type, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

if TYPE_CHECKING:
    from .court import Court
    from .payment import Payment
    from .timeslot import Timeslot
    from .user import User


class ReservationStatus(str, Enum):
    """Reservation lifecycle statuses."""

    PENDING = "pending"  # Admitted, awaiting payment
    CONFIRMED = "confirmed"  # Payment settled; occupies a seat
    CANCELLED = "cancelled"  # By the owner or by payment failure
    COMPLETED = "completed"  # Session took place (set by an external scheduler)


TERMINAL_RESERVATION_STATUSES = frozenset(
    {ReservationStatus.CANCELLED.value, ReservationStatus.COMPLETED.value}
)


class Reservation(Base):
    """A user's booking of one seat in a court/timeslot/date slot."""

    __tablename__ = "reservations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), nullable=False)
    court_id: Mapped[str] = mapped_column(String(26), ForeignKey("courts.id"), nullable=False)
    timeslot_id: Mapped[str] = mapped_column(String(26), ForeignKey("timeslots.id"), nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReservationStatus.PENDING.value, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="reservations")
    court: Mapped["Court"] = relationship("Court", back_populates="reservations")
    timeslot: Mapped["Timeslot"] = relationship("Timeslot", back_populates="reservations")
    payment: Mapped[Optional["Payment"]] = relationship(
        "Payment", back_populates="reservation", uselist=False
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="ck_reservations_status",
        ),
        Index("ix_reservations_slot", "court_id", "timeslot_id", "date", "status"),
        Index("ix_reservations_user_date", "user_id", "date"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = ReservationStatus.PENDING.value

    def __repr__(self) -> str:
        return (
            f"<Reservation {self.id}: user={self.user_id}, court={self.court_id}, "
            f"timeslot={self.timeslot_id}, date={self.date}, status={self.status}>"
        )

    @property
    def slot_key(self) -> tuple[str, str, date_type]:
        return (self.court_id, self.timeslot_id, self.date)

    def is_pending(self) -> bool:
        return self.status == ReservationStatus.PENDING.value

    def is_confirmed(self) -> bool:
        return self.status == ReservationStatus.CONFIRMED.value

    def is_cancelled(self) -> bool:
        return self.status == ReservationStatus.CANCELLED.value

    def is_completed(self) -> bool:
        return self.status == ReservationStatus.COMPLETED.value

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RESERVATION_STATUSES

    def can_be_cancelled(self) -> bool:
        return not self.is_terminal()

    def mark_confirmed(self) -> None:
        self.status = ReservationStatus.CONFIRMED.value
        self.confirmed_at = datetime.now(timezone.utc)

    def mark_cancelled(self, reason: str) -> None:
        self.status = ReservationStatus.CANCELLED.value
        self.cancelled_at = datetime.now(timezone.utc)
        self.cancellation_reason = reason

    def mark_completed(self) -> None:
        self.status = ReservationStatus.COMPLETED.value
