# backend/reservation_api/models/audit_log.py
"""
Audit trail for reservation and payment status transitions.

Every named transition (admission, user cancellation, settlement, payment
failure, ...) writes one row so the history of a reservation/payment pair can
be reconstructed without relying on application logs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy import Column, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
import ulid

from ..database import Base


def _now_utc() -> datetime:
    """Return timezone-aware UTC timestamp for defaults."""
    return datetime.now(timezone.utc)


class AuditLog(Base):
    """Persistence model for audit trail entries."""

    __tablename__ = "audit_log"
    __table_args__ = (Index("ix_audit_log_entity", "entity_type", "entity_id"),)

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=False)
    action = Column(String(50), nullable=False)
    actor_id = Column(String(26), nullable=True)
    actor_role = Column(String(30), nullable=True)
    trigger = Column(String(100), nullable=True)
    occurred_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )
    before = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=True,
    )
    after = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=True,
    )

    @classmethod
    def from_transition(
        cls,
        entity_type: str,
        entity_id: str,
        action: str,
        *,
        from_status: Optional[str],
        to_status: str,
        actor_id: Optional[str] = None,
        actor_role: str = "system",
        trigger: Optional[str] = None,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> "AuditLog":
        """Build an AuditLog row for a status change."""
        after: dict[str, Any] = {"status": to_status}
        if extra:
            after.update(extra)
        return cls(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            actor_role=actor_role,
            trigger=trigger,
            before={"status": from_status} if from_status is not None else None,
            after=after,
        )

    def __repr__(self) -> str:
        return f"<AuditLog {self.entity_type}:{self.entity_id} {self.action}>"
