"""
Фоновые задачи воркера: ретрансляция outbox в Kafka и очистка.

Событие удаляется из outbox только после подтвержденной доставки.
Недоставленное откладывается на 5 ** retry_count секунд и после
OUTBOX_MAX_RETRIES попыток помечается failed.
"""
import asyncio
import logging
from datetime import datetime, timezone, timedelta
from pathlib import Path

from ampp.core.config import settings
from ampp.infrastructure.db.models import OutboxEvent
from ampp.infrastructure.db.uow import UnitOfWork
from ampp.infrastructure.kafka.producer import KafkaEventPublisher, OutboxMessage
from ampp.utils.serialization import to_json_bytes

logger = logging.getLogger(__name__)
HEALTH_FILE = Path("/tmp/healthy")
FAILED = "failed"

async def touch_health_file() -> None:
    try:
        HEALTH_FILE.touch()
    except OSError:
        logger.warning("Cannot touch health file %s", HEALTH_FILE)

async def run_outbox_loop(ctx) -> None:
    logger.info("Outbox relay started")

    while True:
        try:
            delivered = await relay_outbox_batch(ctx)
            if not delivered:
                await asyncio.sleep(settings.ARQ.OUTBOX_IDLE_SLEEP)

        except asyncio.CancelledError:
            logger.info("Outbox relay cancelled")
            break

        except Exception as e:
            logger.error("Outbox relay iteration failed: %s", e, exc_info=True)
            await asyncio.sleep(settings.ARQ.OUTBOX_ERROR_SLEEP)

def build_message(event: OutboxEvent) -> OutboxMessage:
    """Ключ сообщения: user_id, чтобы события пользователя шли в одну партицию."""
    owner = event.payload.get("user_id") or event.payload.get("goal_id")
    headers = [("event_type", event.event_type.encode("utf-8"))]
    if event.trace_id:
        headers.append(("X-Request-ID", event.trace_id.encode("utf-8")))

    return OutboxMessage(
        event_id=event.event_id,
        topic=event.topic,
        value=to_json_bytes(event.payload),
        key=str(owner).encode("utf-8") if owner else None,
        headers=headers,
    )

def _postpone(event: OutboxEvent, now: datetime) -> None:
    event.retry_count += 1
    if event.retry_count >= settings.ARQ.OUTBOX_MAX_RETRIES:
        event.status = FAILED
        logger.error(
            "Outbox event %s (%s) failed permanently after %s attempts",
            event.event_id,
            event.event_type,
            event.retry_count,
        )
        return
    event.next_retry_at = now + timedelta(seconds=5 ** event.retry_count)

async def relay_outbox_batch(ctx) -> int:
    """Отправляет пачку готовых событий, возвращает число доставленных."""
    session_maker = ctx.get("db_session_maker")
    publisher: KafkaEventPublisher | None = ctx.get("kafka_publisher")
    if not session_maker or not publisher:
        return 0

    await touch_health_file()

    async with UnitOfWork(session_maker) as uow:
        events = await uow.outbox.get_pending_events(limit=settings.ARQ.OUTBOX_BATCH_LIMIT)
        if not events:
            return 0

        now = datetime.now(timezone.utc)
        messages: list[OutboxMessage] = []
        by_id: dict = {}
        for event in events:
            try:
                messages.append(build_message(event))
            except TypeError as e:
                logger.error("Outbox event %s is not serializable: %s", event.event_id, e)
                event.status = FAILED
                continue
            by_id[event.event_id] = event

        if not messages:
            return 0

        results = await publisher.publish(messages)

        delivered = [event_id for event_id, ok in results.items() if ok]
        for event_id, ok in results.items():
            if not ok:
                _postpone(by_id[event_id], now)

        await uow.outbox.delete_events(delivered)

    if delivered:
        logger.info("Relayed %s outbox events", len(delivered))
    return len(delivered)

async def purge_failed_outbox_events(ctx) -> int:
    session_maker = ctx.get("db_session_maker")
    if not session_maker:
        return 0

    retention = timedelta(days=settings.ARQ.OUTBOX_FAILED_RETENTION_DAYS)
    async with UnitOfWork(session_maker) as uow:
        deleted = await uow.outbox.delete_failed_before(datetime.now(timezone.utc) - retention)

    logger.info("Purged %s failed outbox events", deleted)
    return deleted
