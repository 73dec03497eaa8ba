from decimal import Decimal

from ampp.domain.enums import AchievementType
from ampp.domain.schemas.achievements import AchievementRecord, GoalSnapshot
from ampp.services.achievements.coordinator import (
    AchievementUnlockCoordinator,
    build_context,
)
from ampp.services.achievements.rules import AchievementRuleEngine, rule_engine

_DECLARATION_ORDER = {member: index for index, member in enumerate(AchievementType)}

class AchievementService:
    """Связывает движок правил с координатором выдачи."""

    def __init__(
        self,
        coordinator: AchievementUnlockCoordinator,
        engine: AchievementRuleEngine = rule_engine,
    ):
        self.coordinator = coordinator
        self.engine = engine

    async def check_goal_created(
        self,
        existing_goal_count: int,
        goal: GoalSnapshot,
    ) -> list[AchievementRecord]:
        keys = self.engine.evaluate_on_goal_created(existing_goal_count, goal)
        return await self._grant(keys, goal, Decimal("0"))

    async def check_contribution(
        self,
        goal: GoalSnapshot,
        contribution_amount: Decimal,
        total_savings_after: Decimal,
    ) -> list[AchievementRecord]:
        keys = self.engine.evaluate_on_contribution(
            goal,
            contribution_amount,
            total_savings_after,
        )
        return await self._grant(keys, goal, total_savings_after)

    async def _grant(
        self,
        keys: set[AchievementType],
        goal: GoalSnapshot,
        total_savings: Decimal,
    ) -> list[AchievementRecord]:
        if not keys:
            return []
        ordered = sorted(keys, key=_DECLARATION_ORDER.__getitem__)
        contexts = [build_context(key, goal, total_savings) for key in ordered]
        return await self.coordinator.unlock_many(contexts)
