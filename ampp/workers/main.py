import asyncio
from arq.connections import RedisSettings
from arq.cron import cron

from ampp.core.config import settings
from ampp.core.database import get_db_engine, get_session_factory
from ampp.core.logging import setup_logging
from ampp.infrastructure.kafka.producer import KafkaEventPublisher
from ampp.workers.tasks import purge_failed_outbox_events, run_outbox_loop

async def on_startup(ctx):
    setup_logging()

    ctx["db_engine"] = get_db_engine()
    ctx["db_session_maker"] = get_session_factory(ctx["db_engine"])

    publisher = KafkaEventPublisher()
    await publisher.start()
    ctx["kafka_publisher"] = publisher

    ctx["outbox_relay"] = asyncio.create_task(run_outbox_loop(ctx))

async def on_shutdown(ctx):
    relay = ctx.get("outbox_relay")
    if relay:
        relay.cancel()
        await asyncio.gather(relay, return_exceptions=True)

    if ctx.get("kafka_publisher"):
        await ctx["kafka_publisher"].stop()

    if ctx.get("db_engine"):
        await ctx["db_engine"].dispose()

class WorkerSettings:
    """Запуск: arq ampp.workers.main.WorkerSettings"""
    functions = [purge_failed_outbox_events]
    cron_jobs = [
        cron(purge_failed_outbox_events, weekday="sun", hour=3, minute=0),
    ]
    on_startup = on_startup
    on_shutdown = on_shutdown
    queue_name = settings.ARQ.ARQ_QUEUE_NAME
    redis_settings = RedisSettings.from_dsn(settings.ARQ.REDIS_URL)
