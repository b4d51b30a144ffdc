"""Append-only access to the audit trail."""

from typing import Any, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog
from .base_repository import BaseRepository


class AuditRepository(BaseRepository[AuditLog]):
    def __init__(self, db: Session):
        super().__init__(db, AuditLog)

    def record_transition(
        self,
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
    ) -> AuditLog:
        entry = AuditLog.from_transition(
            entity_type,
            entity_id,
            action,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
            actor_role=actor_role,
            trigger=trigger,
            extra=extra,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_for_entity(self, entity_type: str, entity_id: str) -> List[AuditLog]:
        return self._execute_query(
            self.db.query(AuditLog)
            .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.occurred_at.asc(), AuditLog.id.asc())
        )
