from decimal import Decimal
from uuid import UUID
from sqlalchemy import func, select

from ampp.infrastructure.db.models import Goal
from ampp.infrastructure.db.repositories.base import BaseRepository

class GoalRepository(BaseRepository):
    """Репозиторий для операций с целями."""

    def create(self, goal: Goal) -> Goal:
        self.db.add(goal)
        return goal

    async def get_by_id(self, user_id: UUID, goal_id: UUID) -> Goal | None:
        result = await self.db.execute(
            select(Goal).where(
                Goal.goal_id == goal_id,
                Goal.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, user_id: UUID, goal_id: UUID) -> Goal | None:
        result = await self.db.execute(
            select(Goal)
            .where(
                Goal.goal_id == goal_id,
                Goal.user_id == user_id,
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def list_by_user(self, user_id: UUID, status: str | None = None) -> list[Goal]:
        query = select(Goal).where(Goal.user_id == user_id)
        if status is not None:
            query = query.where(Goal.status == status)
        result = await self.db.execute(query.order_by(Goal.created_at.asc()))
        return list(result.scalars().all())

    async def count_by_user(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Goal).where(Goal.user_id == user_id)
        )
        return int(result.scalar_one())

    async def get_total_savings(self, user_id: UUID) -> Decimal:
        """Сумма current_amount по всем целям пользователя."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(Goal.current_amount), 0))
            .where(Goal.user_id == user_id)
        )
        return Decimal(str(result.scalar_one()))
