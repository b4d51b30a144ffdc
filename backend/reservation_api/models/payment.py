"""
Payment model for gateway-backed reservation payments.

Each reservation has at most one payment (``reservation_id`` is unique) and
each payment is addressed by the gateway through its unique
``transaction_id``. Status only moves out of PENDING; PAID, FAILED and
EXPIRED are terminal.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..database import Base

if TYPE_CHECKING:
    from .reservation import Reservation


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


TERMINAL_PAYMENT_STATUSES = frozenset(
    {PaymentStatus.PAID.value, PaymentStatus.FAILED.value, PaymentStatus.EXPIRED.value}
)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class Payment(Base):
    """Gateway payment for a single reservation."""

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    reservation_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("reservations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True
    )
    payment_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    transaction_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    # Gateway checkout handles
    gateway_token: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    gateway_redirect_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expired_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    reservation: Mapped["Reservation"] = relationship("Reservation", back_populates="payment")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'paid', 'failed', 'expired')",
            name="ck_payments_status",
        ),
        CheckConstraint("amount >= 0", name="ck_payments_amount_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Payment(reservation_id={self.reservation_id}, transaction_id={self.transaction_id}, "
            f"amount={self.amount}, status={self.status})>"
        )

    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID.value

    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING.value

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PAYMENT_STATUSES

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True when expired explicitly or when a pending checkout outlived ``expired_at``."""
        if self.status == PaymentStatus.EXPIRED.value:
            return True
        if not self.is_pending() or self.expired_at is None:
            return False
        current = now or datetime.now(timezone.utc)
        return current >= _as_aware(self.expired_at)

    @property
    def effective_status(self) -> str:
        if self.is_pending() and self.is_expired():
            return PaymentStatus.EXPIRED.value
        return self.status

    def mark_paid(self, paid_at: Optional[datetime] = None) -> None:
        self.status = PaymentStatus.PAID.value
        self.paid_at = paid_at or datetime.now(timezone.utc)

    def mark_failed(self) -> None:
        self.status = PaymentStatus.FAILED.value
