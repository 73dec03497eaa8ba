from dataclasses import dataclass

from ampp.domain.enums import AchievementKind, AchievementType
from ampp.domain.schemas.achievements import AchievementContext, GoalProgressContext

@dataclass(frozen=True)
class AchievementDefinition:
    title: str
    description: str
    icon: str
    kind: AchievementKind

CATALOG: dict[AchievementType, AchievementDefinition] = {
    AchievementType.FIRST_GOAL: AchievementDefinition(
        "Goal Setter", "Created your first savings goal", "Target", AchievementKind.GOAL,
    ),
    AchievementType.FIRST_CONTRIBUTION: AchievementDefinition(
        "Savings Starter", "Made your first contribution to a goal", "TrendingUp",
        AchievementKind.SAVINGS,
    ),
    AchievementType.GOAL_25_PERCENT: AchievementDefinition(
        "Quarter Way There", "Reached 25% of a savings goal", "Award", AchievementKind.GOAL,
    ),
    AchievementType.GOAL_50_PERCENT: AchievementDefinition(
        "Halfway Hero", "Reached 50% of a savings goal", "Medal", AchievementKind.GOAL,
    ),
    AchievementType.GOAL_75_PERCENT: AchievementDefinition(
        "Almost There", "Reached 75% of a savings goal", "Star", AchievementKind.GOAL,
    ),
    AchievementType.GOAL_COMPLETED: AchievementDefinition(
        "Goal Achiever", "Completed your goal: {goal_title}", "Trophy", AchievementKind.GOAL,
    ),
    AchievementType.SAVINGS_1000: AchievementDefinition(
        "Thousand Saver", "Saved ₹1,000 across all goals", "Coins", AchievementKind.SAVINGS,
    ),
    AchievementType.SAVINGS_5000: AchievementDefinition(
        "Five Grand", "Saved ₹5,000 across all goals", "Banknote", AchievementKind.SAVINGS,
    ),
    AchievementType.SAVINGS_10000: AchievementDefinition(
        "Ten Thousand Club", "Saved ₹10,000 across all goals", "Gem", AchievementKind.SAVINGS,
    ),
    AchievementType.CONSISTENT_SAVER: AchievementDefinition(
        "Consistent Saver", "Made contributions for 7 days in a row", "Calendar",
        AchievementKind.SAVINGS,
    ),
}

def describe(achievement_type: AchievementType, context: AchievementContext) -> str:
    template = CATALOG[achievement_type].description
    if isinstance(context, GoalProgressContext):
        return template.format(goal_title=context.goal_title)
    return template
