"""Ledger of inbound payment gateway callbacks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.webhook_event import WebhookEvent, WebhookEventStatus
from ..repositories.factory import RepositoryFactory
from .base import BaseService


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class WebhookLedgerService(BaseService):
    """
    Records every callback before it is applied and its outcome afterwards.

    Methods flush only; the caller commits.
    """

    def __init__(self, db: Session) -> None:
        super().__init__(db)
        self.repository = RepositoryFactory.create_webhook_event_repository(db)

    def _bump_retry(self, existing: WebhookEvent, now: datetime) -> WebhookEvent:
        existing.retry_count = (existing.retry_count or 0) + 1
        existing.last_retry_at = now
        self.repository.flush()
        return existing

    @BaseService.measure_operation("webhook_ledger.log_received")
    def log_received(
        self,
        *,
        source: str,
        event_type: str,
        event_id: str,
        payload: dict[str, Any],
    ) -> WebhookEvent:
        """
        Log a received callback before processing.

        A redelivered callback bumps the retry tracking of its existing row.
        Call at the start of a fresh transaction: losing the insert race
        rolls the session back before re-reading the winner.
        """
        now = _now_utc()
        existing = self.repository.find_by_source_and_event_id(source, event_id)
        if existing is not None:
            return self._bump_retry(existing, now)

        try:
            return self.repository.create(
                source=source,
                event_type=event_type or "unknown",
                event_id=event_id,
                payload=payload,
                status=WebhookEventStatus.RECEIVED,
                received_at=now,
                retry_count=0,
            )
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                self.db.rollback()
                existing = self.repository.find_by_source_and_event_id(source, event_id)
                if existing is not None:
                    return self._bump_retry(existing, now)
            raise

    @BaseService.measure_operation("webhook_ledger.mark_processed")
    def mark_processed(
        self,
        event: WebhookEvent,
        *,
        related_entity_type: str | None = None,
        related_entity_id: str | None = None,
        duration_ms: int | None = None,
        status: str = WebhookEventStatus.PROCESSED,
    ) -> WebhookEvent:
        event.status = status
        event.processing_error = None
        event.processed_at = _now_utc()
        event.related_entity_type = related_entity_type
        event.related_entity_id = related_entity_id
        event.processing_duration_ms = duration_ms
        self.repository.flush()
        return event

    @BaseService.measure_operation("webhook_ledger.mark_failed")
    def mark_failed(
        self,
        event: WebhookEvent,
        *,
        error: str,
        duration_ms: int | None = None,
        status: str = WebhookEventStatus.FAILED,
    ) -> WebhookEvent:
        event.status = status
        event.processing_error = error
        event.processed_at = _now_utc()
        event.processing_duration_ms = duration_ms
        self.repository.flush()
        return event
