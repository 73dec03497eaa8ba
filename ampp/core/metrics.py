from prometheus_client import Counter

ACHIEVEMENTS_UNLOCKED_TOTAL = Counter(
    "achievements_unlocked_total",
    "Total number of achievements granted",
    ["achievement_type"],
)

ACHIEVEMENT_UNLOCK_FAILURES_TOTAL = Counter(
    "achievement_unlock_failures_total",
    "Total number of unlock attempts dropped because of persistence errors",
    ["achievement_type"],
)

GOALS_CREATED_TOTAL = Counter(
    "goals_created_total",
    "Total number of goals created",
)

GOAL_CONTRIBUTIONS_TOTAL = Counter(
    "goal_contributions_total",
    "Total number of contributions applied to goals",
)

TRANSACTIONS_CATEGORIZED_TOTAL = Counter(
    "transactions_categorized_total",
    "Total number of categorized transactions",
    ["category", "source"],
)
