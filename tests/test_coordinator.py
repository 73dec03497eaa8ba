import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4
from unittest.mock import AsyncMock, patch
from freezegun import freeze_time
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from ampp.core import metrics
from ampp.core.config import settings
from ampp.domain.enums import AchievementType
from ampp.domain.schemas.achievements import (
    FirstContributionContext,
    FirstGoalContext,
    GoalProgressContext,
    SavingsContext,
)
from ampp.infrastructure.db import models
from ampp.infrastructure.db.repositories.achievements import AchievementRepository
from ampp.services.achievements.coordinator import AchievementUnlockCoordinator, build_context

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)

def _first_goal(title="New laptop"):
    return FirstGoalContext(goal_id=uuid4(), goal_title=title)

def _failures(achievement_type: AchievementType) -> float:
    return metrics.ACHIEVEMENT_UNLOCK_FAILURES_TOTAL.labels(
        achievement_type=achievement_type.value,
    )._value.get()

def _stored(user_id, achievement_type, unlocked_at):
    return models.Achievement(
        achievement_id=uuid4(),
        user_id=user_id,
        achievement_type=achievement_type.value,
        scope_key="",
        title="t",
        description="d",
        icon="i",
        kind="GOAL",
        context=None,
        unlocked_at=unlocked_at,
    )

async def test_unlock_twice_grants_once(fake_uow, user_id):
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    context = _first_goal()

    first = await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, context)
    second = await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, context)

    assert first is not None
    assert first.title == "Goal Setter"
    assert first.context == context
    assert second is None, "Повторная выдача должна вернуть None"
    fake_uow.achievements.check_and_unlock.assert_awaited_once()
    assert coordinator.count() == 1

async def test_unlock_writes_outbox_event(fake_uow, user_id):
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    record = await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())

    fake_uow.outbox.add_event.assert_called_once()
    kwargs = fake_uow.outbox.add_event.call_args.kwargs
    assert kwargs["topic"] == settings.KAFKA.TOPIC_ACHIEVEMENTS_UNLOCKED
    assert kwargs["event_type"] == "achievement.unlocked"
    assert kwargs["event_data"]["achievement_id"] == str(record.achievement_id)

async def test_stored_context_uses_field_names(fake_uow, user_id):
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal("Trip"))

    [row] = fake_uow.achievements.check_and_unlock.await_args.args
    assert row.context["goal_title"] == "Trip"
    assert row.context["achievement_type"] == "FIRST_GOAL"

async def test_unlock_already_stored_returns_none(fake_uow, user_id):
    fake_uow.achievements.check_and_unlock = AsyncMock(return_value=None)
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)

    result = await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())

    assert result is None
    fake_uow.outbox.add_event.assert_not_called()
    # ключ запомнен, второй раз в репозиторий не ходим
    await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())
    fake_uow.achievements.check_and_unlock.assert_awaited_once()

async def test_persistence_failure_returns_none(fake_uow, user_id):
    fake_uow.achievements.check_and_unlock = AsyncMock(
        side_effect=OperationalError("INSERT", {}, Exception("db down")),
    )
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    before = _failures(AchievementType.FIRST_GOAL)

    result = await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())

    assert result is None, "Ошибка хранилища не пробрасывается"
    assert _failures(AchievementType.FIRST_GOAL) == before + 1
    assert coordinator.count() == 0

@pytest.mark.parametrize(
    "error",
    [
        ConnectionRefusedError(111, "Connect call failed"),
        asyncio.TimeoutError(),
    ],
)
async def test_driver_error_returns_none(fake_uow, user_id, error):
    fake_uow.achievements.check_and_unlock = AsyncMock(side_effect=error)
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    before = _failures(AchievementType.FIRST_GOAL)

    result = await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())

    assert result is None, "Сетевая ошибка драйвера не пробрасывается"
    assert _failures(AchievementType.FIRST_GOAL) == before + 1

async def test_hydrate_driver_error_sets_error(fake_uow, user_id):
    fake_uow.achievements.get_by_user_id = AsyncMock(
        side_effect=ConnectionRefusedError(111, "Connect call failed"),
    )
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)

    await coordinator.hydrate()

    assert coordinator.error == "Failed to load achievements"
    assert not coordinator.is_hydrated

async def test_failed_unlock_can_be_retried(fake_uow, user_id):
    fake_uow.achievements.check_and_unlock = AsyncMock(
        side_effect=[OperationalError("INSERT", {}, Exception("db down")), None],
    )
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)

    await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())
    await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())

    assert fake_uow.achievements.check_and_unlock.await_count == 2

async def test_unlock_for_another_user_is_rejected(fake_uow, user_id):
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    with pytest.raises(ValueError):
        await coordinator.unlock(uuid4(), AchievementType.FIRST_GOAL, _first_goal())

async def test_context_must_match_type(fake_uow, user_id):
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    with pytest.raises(ValueError):
        await coordinator.unlock(user_id, AchievementType.FIRST_CONTRIBUTION, _first_goal())

async def test_progress_milestones_are_scoped_per_goal(fake_uow, user_id):
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    first_goal = GoalProgressContext(
        achievement_type="GOAL_25_PERCENT", goal_id=uuid4(), goal_title="Laptop",
    )
    second_goal = GoalProgressContext(
        achievement_type="GOAL_25_PERCENT", goal_id=uuid4(), goal_title="Trip",
    )

    assert await coordinator.unlock(user_id, AchievementType.GOAL_25_PERCENT, first_goal)
    assert await coordinator.unlock(user_id, AchievementType.GOAL_25_PERCENT, second_goal)
    assert await coordinator.unlock(user_id, AchievementType.GOAL_25_PERCENT, first_goal) is None

async def test_goal_completed_description(fake_uow, user_id):
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    context = GoalProgressContext(
        achievement_type="GOAL_COMPLETED", goal_id=uuid4(), goal_title="Laptop",
    )
    record = await coordinator.unlock(user_id, AchievementType.GOAL_COMPLETED, context)
    assert record.description == "Completed your goal: Laptop"
    assert record.scope_key == str(context.goal_id)

async def test_listeners_are_notified(fake_uow, user_id):
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    sync_seen = []
    async_listener = AsyncMock()
    unsubscribe = coordinator.subscribe(sync_seen.append)
    coordinator.subscribe(async_listener)

    record = await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())
    unsubscribe()
    await coordinator.unlock(
        user_id,
        AchievementType.FIRST_CONTRIBUTION,
        FirstContributionContext(goal_id=uuid4(), goal_title="Laptop"),
    )

    assert sync_seen == [record], "После отписки слушатель не вызывается"
    assert async_listener.await_count == 2

async def test_unlock_many_returns_only_new(fake_uow, user_id):
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())

    granted = await coordinator.unlock_many([
        _first_goal(),
        SavingsContext(achievement_type="SAVINGS_1000", total_savings=Decimal("1200")),
    ])

    assert [record.achievement_type for record in granted] == [AchievementType.SAVINGS_1000]

async def test_hydrate_loads_stored(fake_uow, user_id):
    fake_uow.achievements.get_by_user_id = AsyncMock(
        return_value=[_stored(user_id, AchievementType.FIRST_GOAL, NOW)],
    )
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)

    await coordinator.hydrate()

    assert coordinator.is_hydrated
    assert not coordinator.is_loading
    assert coordinator.error is None
    assert coordinator.count() == 1
    # уже выданное не уходит в репозиторий
    assert await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal()) is None
    fake_uow.achievements.check_and_unlock.assert_not_awaited()

async def test_hydrate_failure_keeps_cache(fake_uow, user_id):
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    await coordinator.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())
    fake_uow.achievements.get_by_user_id = AsyncMock(
        side_effect=OperationalError("SELECT", {}, Exception("db down")),
    )

    await coordinator.hydrate()

    assert coordinator.error == "Failed to load achievements"
    assert not coordinator.is_loading
    assert coordinator.count() == 1, "Кэш не очищается при ошибке загрузки"

async def test_recently_unlocked_window(fake_uow, user_id):
    fake_uow.achievements.get_by_user_id = AsyncMock(return_value=[
        _stored(user_id, AchievementType.FIRST_GOAL, NOW - timedelta(days=8)),
        _stored(user_id, AchievementType.FIRST_CONTRIBUTION, NOW - timedelta(days=7)),
        _stored(user_id, AchievementType.SAVINGS_1000, NOW - timedelta(hours=1)),
    ])
    coordinator = AchievementUnlockCoordinator(fake_uow, user_id)
    await coordinator.hydrate()

    with freeze_time(NOW):
        recent = coordinator.recently_unlocked()
        last_day = coordinator.recently_unlocked(1)

    assert [r.achievement_type for r in recent] == [
        AchievementType.FIRST_CONTRIBUTION,
        AchievementType.SAVINGS_1000,
    ], "Ровно 7 дней назад входит в окно, 8 дней нет"
    assert [r.achievement_type for r in last_day] == [AchievementType.SAVINGS_1000]

def test_build_context_has_no_consistent_saver(make_goal):
    with pytest.raises(ValueError):
        build_context(AchievementType.CONSISTENT_SAVER, make_goal(), Decimal("0"))

# Интеграция с SQLite

async def test_second_session_does_not_regrant(uow, user_id):
    first = AchievementUnlockCoordinator(uow, user_id)
    second = AchievementUnlockCoordinator(uow, user_id)

    granted = await first.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())
    again = await second.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())

    assert granted is not None
    assert again is None, "Выдача идемпотентна между сессиями"
    async with uow:
        stored = await uow.achievements.get_by_user_id(user_id)
        events = (await uow.session.execute(select(models.OutboxEvent))).scalars().all()
    assert len(stored) == 1
    assert [event.topic for event in events] == [settings.KAFKA.TOPIC_ACHIEVEMENTS_UNLOCKED]

async def test_concurrent_insert_is_rejected_by_unique_key(uow, user_id):
    await AchievementUnlockCoordinator(uow, user_id).unlock(
        user_id, AchievementType.FIRST_GOAL, _first_goal(),
    )
    racing = AchievementUnlockCoordinator(uow, user_id)
    before = _failures(AchievementType.FIRST_GOAL)

    # Проверка существования проходит, вставка падает на уникальном индексе
    with patch.object(AchievementRepository, "get_by_key", AsyncMock(return_value=None)):
        result = await racing.unlock(user_id, AchievementType.FIRST_GOAL, _first_goal())

    assert result is None
    assert _failures(AchievementType.FIRST_GOAL) == before, "Гонка не считается сбоем"
    async with uow:
        assert len(await uow.achievements.get_by_user_id(user_id)) == 1

async def test_hydrate_from_database(uow, user_id):
    writer = AchievementUnlockCoordinator(uow, user_id)
    await writer.unlock(
        user_id,
        AchievementType.SAVINGS_1000,
        SavingsContext(achievement_type="SAVINGS_1000", total_savings=Decimal("1500")),
    )

    reader = AchievementUnlockCoordinator(uow, user_id)
    await reader.hydrate()

    [record] = reader.list_unlocked()
    assert record.achievement_type == AchievementType.SAVINGS_1000
    assert record.context.total_savings == Decimal("1500")
    assert record.unlocked_at.tzinfo is not None
