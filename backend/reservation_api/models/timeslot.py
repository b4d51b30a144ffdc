"""Timeslot model: a recurring daily time window."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..database import Base

if TYPE_CHECKING:
    from .reservation import Reservation


class Timeslot(Base):
    """A daily slot such as ``07:00`` for 60 minutes. Not a calendar instance."""

    __tablename__ = "timeslots"
    __table_args__ = (CheckConstraint("duration > 0", name="ck_timeslots_duration_positive"),)

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    time: Mapped[str] = mapped_column(String(5), nullable=False, comment="HH:MM")
    duration: Mapped[int] = mapped_column(Integer, nullable=False, comment="Minutes")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    reservations: Mapped[List["Reservation"]] = relationship(
        "Reservation", back_populates="timeslot"
    )

    def __repr__(self) -> str:
        return f"<Timeslot(id={self.id}, time={self.time}, duration={self.duration})>"
