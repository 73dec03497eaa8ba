"""
Координатор выдачи достижений.

Живет в пределах одной пользовательской сессии или запроса: держит кэш уже
выданных достижений пользователя и гарантирует, что каждый ключ
(user_id, achievement_type, scope_key) выдается не более одного раза.
Ошибки хранилища при выдаче не пробрасываются: выдача считается
несостоявшейся и вызывающий код получает None.
"""
import asyncio
import inspect
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Iterable
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ampp.core import metrics
from ampp.core.config import settings
from ampp.domain.enums import AchievementEventType, AchievementType
from ampp.domain.schemas.achievements import (
    AchievementContext,
    AchievementRecord,
    FirstContributionContext,
    FirstGoalContext,
    GoalProgressContext,
    GoalSnapshot,
    SavingsContext,
)
from ampp.infrastructure.db import models
from ampp.infrastructure.db.uow import UnitOfWork
from ampp.services.achievements.catalog import CATALOG, describe
from ampp.services.achievements.rules import PROGRESS_MILESTONES, SAVINGS_MILESTONES

logger = logging.getLogger(__name__)

# asyncpg отдает сетевые ошибки без обертки SQLAlchemy
PERSISTENCE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)

Listener = Callable[[AchievementRecord], Awaitable[None] | None]

def build_context(
    achievement_type: AchievementType,
    goal: GoalSnapshot,
    total_savings: Decimal,
) -> AchievementContext:
    if achievement_type == AchievementType.FIRST_GOAL:
        return FirstGoalContext(goal_id=goal.goal_id, goal_title=goal.title)
    if achievement_type == AchievementType.FIRST_CONTRIBUTION:
        return FirstContributionContext(goal_id=goal.goal_id, goal_title=goal.title)
    if achievement_type in PROGRESS_MILESTONES:
        return GoalProgressContext(
            achievement_type=achievement_type.value,
            goal_id=goal.goal_id,
            goal_title=goal.title,
        )
    if achievement_type in SAVINGS_MILESTONES:
        return SavingsContext(
            achievement_type=achievement_type.value,
            total_savings=total_savings,
        )
    raise ValueError(f"No context builder for {achievement_type.value}")

class AchievementUnlockCoordinator:
    def __init__(self, uow: UnitOfWork, user_id: UUID):
        self.uow = uow
        self.user_id = user_id
        self.is_loading = False
        self.is_hydrated = False
        self.error: str | None = None
        self._achievements: list[AchievementRecord] = []
        self._unlocked_keys: set[tuple[AchievementType, str]] = set()
        self._listeners: list[Listener] = []

    async def hydrate(self) -> None:
        """Загружает выданные достижения. При ошибке кэш не очищается."""
        self.is_loading = True
        self.error = None
        try:
            async with self.uow:
                rows = await self.uow.achievements.get_by_user_id(self.user_id)
                records = [AchievementRecord.model_validate(row) for row in rows]
        except PERSISTENCE_ERRORS:
            logger.exception("Error hydrating achievements for user %s", self.user_id)
            self.error = "Failed to load achievements"
        else:
            self._achievements = records
            self._unlocked_keys = {
                (record.achievement_type, record.scope_key) for record in records
            }
            self.is_hydrated = True
        finally:
            self.is_loading = False

    async def unlock(
        self,
        user_id: UUID,
        achievement_type: AchievementType,
        context: AchievementContext,
    ) -> AchievementRecord | None:
        if user_id != self.user_id:
            raise ValueError("Coordinator is bound to another user")
        if context.achievement_type != achievement_type.value:
            raise ValueError(
                f"Context {context.achievement_type} does not match {achievement_type.value}"
            )

        key = (achievement_type, context.scope_key)
        if key in self._unlocked_keys:
            return None

        definition = CATALOG[achievement_type]
        row = models.Achievement(
            achievement_id=uuid4(),
            user_id=user_id,
            achievement_type=achievement_type.value,
            scope_key=context.scope_key,
            title=definition.title,
            description=describe(achievement_type, context),
            icon=definition.icon,
            kind=definition.kind.value,
            context=context.model_dump(mode="json"),
            unlocked_at=datetime.now(timezone.utc),
        )

        record: AchievementRecord | None = None
        try:
            async with self.uow:
                saved = await self.uow.achievements.check_and_unlock(row)
                if saved is not None:
                    record = AchievementRecord.model_validate(saved)
                    self.uow.outbox.add_event(
                        topic=settings.KAFKA.TOPIC_ACHIEVEMENTS_UNLOCKED,
                        event_type=AchievementEventType.UNLOCKED.value,
                        event_data=record.model_dump(mode="json"),
                    )
        except IntegrityError:
            logger.info(
                "Achievement %s for user %s was unlocked by a concurrent writer",
                achievement_type.value,
                user_id,
            )
            self._unlocked_keys.add(key)
            return None
        except PERSISTENCE_ERRORS:
            logger.exception(
                "Error unlocking achievement %s for user %s",
                achievement_type.value,
                user_id,
            )
            metrics.ACHIEVEMENT_UNLOCK_FAILURES_TOTAL.labels(
                achievement_type=achievement_type.value,
            ).inc()
            return None

        self._unlocked_keys.add(key)
        if record is None:
            return None

        self._achievements.append(record)
        metrics.ACHIEVEMENTS_UNLOCKED_TOTAL.labels(
            achievement_type=achievement_type.value,
        ).inc()
        logger.info("Achievement %s unlocked for user %s", achievement_type.value, user_id)

        await self._notify(record)
        return record

    async def unlock_many(
        self,
        contexts: Iterable[AchievementContext],
    ) -> list[AchievementRecord]:
        """Выдает достижения последовательно, возвращает только новые."""
        granted: list[AchievementRecord] = []
        for context in contexts:
            record = await self.unlock(
                self.user_id,
                AchievementType(context.achievement_type),
                context,
            )
            if record is not None:
                granted.append(record)
        return granted

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self, record: AchievementRecord) -> None:
        for listener in list(self._listeners):
            result = listener(record)
            if inspect.isawaitable(result):
                await result

    def list_unlocked(self) -> list[AchievementRecord]:
        return list(self._achievements)

    def recently_unlocked(
        self,
        window_days: int | None = None,
    ) -> list[AchievementRecord]:
        """Окно включает границу: ровно window_days назад еще считается."""
        if window_days is None:
            window_days = settings.APP.RECENT_ACHIEVEMENTS_DAYS
        cutoff = datetime.now(timezone.utc) - timedelta(days=window_days)
        return [
            record for record in self._achievements
            if record.unlocked_at >= cutoff
        ]

    def count(self) -> int:
        return len(self._achievements)
