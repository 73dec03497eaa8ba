"""
Движок правил достижений.

Чистые функции: по снимку состояния цели и событию возвращает набор
ключей-кандидатов. Не знает, что уже выдано, и не делает I/O.
"""
from decimal import Decimal

from ampp.domain.enums import AchievementType
from ampp.domain.schemas.achievements import GoalSnapshot

# Полуинтервалы [нижняя граница, следующая граница), проверяются сверху вниз.
PROGRESS_BANDS: tuple[tuple[Decimal, AchievementType], ...] = (
    (Decimal("100"), AchievementType.GOAL_COMPLETED),
    (Decimal("75"), AchievementType.GOAL_75_PERCENT),
    (Decimal("50"), AchievementType.GOAL_50_PERCENT),
    (Decimal("25"), AchievementType.GOAL_25_PERCENT),
)

SAVINGS_THRESHOLDS: tuple[tuple[Decimal, AchievementType], ...] = (
    (Decimal("1000"), AchievementType.SAVINGS_1000),
    (Decimal("5000"), AchievementType.SAVINGS_5000),
    (Decimal("10000"), AchievementType.SAVINGS_10000),
)

PROGRESS_MILESTONES = frozenset(milestone for _, milestone in PROGRESS_BANDS)
SAVINGS_MILESTONES = frozenset(milestone for _, milestone in SAVINGS_THRESHOLDS)

def milestone_for(progress: Decimal) -> AchievementType | None:
    """
    Одна веха по текущему прогрессу в процентах.

    Не накопительно: скачок с 10% до 120% дает только GOAL_COMPLETED.
    """
    for lower_bound, milestone in PROGRESS_BANDS:
        if progress >= lower_bound:
            return milestone
    return None

class AchievementRuleEngine:

    def evaluate_on_goal_created(
        self,
        existing_goal_count: int,
        new_goal: GoalSnapshot,
    ) -> set[AchievementType]:
        """existing_goal_count: число целей пользователя до создания new_goal."""
        keys: set[AchievementType] = set()
        if existing_goal_count + 1 == 1:
            keys.add(AchievementType.FIRST_GOAL)
        return keys

    def evaluate_on_contribution(
        self,
        goal: GoalSnapshot,
        contribution_amount: Decimal,
        total_savings_after: Decimal,
    ) -> set[AchievementType]:
        """goal: снимок после применения пополнения."""
        keys: set[AchievementType] = set()

        if goal.current_amount == contribution_amount:
            keys.add(AchievementType.FIRST_CONTRIBUTION)

        milestone = milestone_for(goal.progress_percent)
        if milestone is not None:
            keys.add(milestone)

        for threshold, savings_key in SAVINGS_THRESHOLDS:
            if total_savings_after >= threshold:
                keys.add(savings_key)

        return keys

rule_engine = AchievementRuleEngine()
