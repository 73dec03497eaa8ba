import logging
from datetime import datetime, timezone
from uuid import UUID
from sqlalchemy import delete, or_, select

from ampp.core.context import get_request_id
from ampp.core.exceptions import InvalidOutboxEventError
from ampp.infrastructure.db.models import OutboxEvent
from ampp.infrastructure.db.repositories.base import BaseRepository
from ampp.utils import serialization

logger = logging.getLogger(__name__)

class OutboxRepository(BaseRepository):
    def add_event(self, topic: str, event_type: str, event_data: dict) -> OutboxEvent:
        """Добавляет событие в outbox в текущей транзакции."""
        try:
            payload = serialization.normalize_payload(
                {"event_type": event_type, **event_data}
            )
        except TypeError as e:
            logger.error("Failed to serialize outbox event: %s", e)
            raise InvalidOutboxEventError("Event serialization failed") from e

        event = OutboxEvent(
            topic=topic,
            event_type=event_type,
            payload=payload,
            status="pending",
            retry_count=0,
            trace_id=get_request_id(),
        )
        self.db.add(event)
        return event

    async def get_pending_events(self, limit: int = 100) -> list[OutboxEvent]:
        """Берёт события, готовые к отправке."""
        now = datetime.now(timezone.utc)

        query = (
            select(OutboxEvent)
            .where(
                OutboxEvent.status == "pending",
                or_(
                    OutboxEvent.next_retry_at.is_(None),
                    OutboxEvent.next_retry_at <= now,
                ),
            )
            .order_by(OutboxEvent.created_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def delete_events(self, event_ids: list[UUID]) -> None:
        """Удаляет успешно отправленные события из outbox."""
        if not event_ids:
            return
        stmt = delete(OutboxEvent).where(OutboxEvent.event_id.in_(event_ids))
        await self.db.execute(stmt)

    async def delete_failed_before(self, cutoff: datetime) -> int:
        """Удаляет окончательно упавшие события старше cutoff."""
        stmt = delete(OutboxEvent).where(
            OutboxEvent.status == "failed",
            OutboxEvent.created_at < cutoff,
        )
        result = await self.db.execute(stmt)
        return result.rowcount or 0
