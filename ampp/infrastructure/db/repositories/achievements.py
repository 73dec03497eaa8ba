from uuid import UUID
from sqlalchemy import select

from ampp.domain.enums import AchievementType
from ampp.infrastructure.db.models import Achievement
from ampp.infrastructure.db.repositories.base import BaseRepository

class AchievementRepository(BaseRepository):
    """Репозиторий достижений пользователя."""

    async def get_by_user_id(self, user_id: UUID) -> list[Achievement]:
        stmt = (
            select(Achievement)
            .where(Achievement.user_id == user_id)
            .order_by(Achievement.unlocked_at.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_key(
        self,
        user_id: UUID,
        achievement_type: AchievementType,
        scope_key: str,
    ) -> Achievement | None:
        stmt = select(Achievement).where(
            Achievement.user_id == user_id,
            Achievement.achievement_type == achievement_type.value,
            Achievement.scope_key == scope_key,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def check_and_unlock(self, achievement: Achievement) -> Achievement | None:
        """
        Сохраняет достижение, если его ключ еще не занят.

        Возвращает None, если запись уже есть. При гонке двух писателей
        уникальный индекс (user_id, achievement_type, scope_key) отклонит
        вторую вставку с IntegrityError на flush.
        """
        existing = await self.get_by_key(
            achievement.user_id,
            AchievementType(achievement.achievement_type),
            achievement.scope_key,
        )
        if existing:
            return None

        self.db.add(achievement)
        await self.db.flush()
        return achievement
