from typing import Self
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ampp.infrastructure.db.repositories.achievements import AchievementRepository
from ampp.infrastructure.db.repositories.goals import GoalRepository
from ampp.infrastructure.db.repositories.outbox import OutboxRepository

class UnitOfWork:
    """
    Одна транзакция на каждый вход в `async with`.

    При нормальном выходе изменения фиксируются, при исключении откатываются.
    Экземпляр можно переиспользовать последовательно, но не вкладывать.
    """
    achievements: AchievementRepository
    goals: GoalRepository
    outbox: OutboxRepository

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> Self:
        if self.session is not None:
            raise RuntimeError("UnitOfWork is already active")
        self.session = self.session_factory()
        self.achievements = AchievementRepository(self.session)
        self.goals = GoalRepository(self.session)
        self.outbox = OutboxRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        session, self.session = self.session, None
        try:
            if exc_type is None:
                await session.commit()
            else:
                await session.rollback()
        finally:
            await session.close()
