"""Data access for the gateway callback ledger."""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.webhook_event import WebhookEvent
from .base_repository import BaseRepository


class WebhookEventRepository(BaseRepository[WebhookEvent]):
    def __init__(self, db: Session):
        super().__init__(db, WebhookEvent)

    def find_by_source_and_event_id(self, source: str, event_id: str) -> Optional[WebhookEvent]:
        try:
            return (
                self.db.query(WebhookEvent)
                .filter(WebhookEvent.source == source, WebhookEvent.event_id == event_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error getting webhook event %s/%s: %s", source, event_id, e)
            raise RepositoryException(f"Failed to retrieve WebhookEvent: {e}") from e
