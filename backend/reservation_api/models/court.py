"""Court model: a bookable studio unit with a per-slot capacity."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..database import Base

if TYPE_CHECKING:
    from .reservation import Reservation


class Court(Base):
    """
    A studio court.

    ``capacity`` is the number of confirmed reservations a single
    (court, timeslot, date) slot may hold. Editing it only affects
    admissions decided afterwards.
    """

    __tablename__ = "courts"
    __table_args__ = (CheckConstraint("capacity > 0", name="ck_courts_capacity_positive"),)

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    reservations: Mapped[List["Reservation"]] = relationship(
        "Reservation", back_populates="court"
    )

    def __repr__(self) -> str:
        return f"<Court(id={self.id}, name={self.name}, capacity={self.capacity}, active={self.is_active})>"
