import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence
from uuid import UUID
from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from ampp.core.config import settings

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class OutboxMessage:
    """Готовое к отправке событие outbox."""
    event_id: UUID
    topic: str
    value: bytes
    key: bytes | None = None
    headers: list[tuple[str, bytes]] = field(default_factory=list)

class KafkaEventPublisher:
    """
    Публикует события outbox в Kafka.

    Сообщения пачки отправляются без ожидания по одному, затем producer
    сбрасывается целиком. Результат доставки возвращается по event_id.
    """

    def __init__(
        self,
        bootstrap_servers: str = settings.KAFKA.KAFKA_BOOTSTRAP_SERVERS,
        send_timeout: int = settings.KAFKA.KAFKA_SEND_TIMEOUT,
    ):
        self.send_timeout = send_timeout
        self.producer = AIOKafkaProducer(
            bootstrap_servers=bootstrap_servers,
            client_id=settings.KAFKA.KAFKA_CLIENT_ID,
            acks="all",
            enable_idempotence=True,
            linger_ms=50,
            request_timeout_ms=send_timeout * 1000,
        )
        self.is_running = False

    async def start(self) -> None:
        await self.producer.start()
        self.is_running = True
        logger.info("Kafka publisher started")

    async def stop(self) -> None:
        if not self.is_running:
            return
        await self.producer.stop()
        self.is_running = False
        logger.info("Kafka publisher stopped")

    async def publish(self, messages: Sequence[OutboxMessage]) -> dict[UUID, bool]:
        if not self.is_running:
            logger.error("Kafka publisher is not running, %s messages postponed", len(messages))
            return {message.event_id: False for message in messages}

        pending: dict[UUID, asyncio.Future] = {}
        delivered: dict[UUID, bool] = {}

        for message in messages:
            try:
                pending[message.event_id] = await self.producer.send(
                    message.topic,
                    value=message.value,
                    key=message.key,
                    headers=message.headers or None,
                )
            except KafkaError as e:
                logger.error("Kafka rejected event %s: %s", message.event_id, e)
                delivered[message.event_id] = False

        try:
            await asyncio.wait_for(self.producer.flush(), timeout=self.send_timeout)
        except (KafkaError, asyncio.TimeoutError) as e:
            logger.error("Kafka flush failed: %s", e)

        results = await asyncio.gather(*pending.values(), return_exceptions=True)
        for event_id, result in zip(pending, results):
            if isinstance(result, Exception):
                logger.error("Delivery of event %s failed: %s", event_id, result)
                delivered[event_id] = False
            else:
                delivered[event_id] = True

        return delivered
