from enum import Enum

class GoalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    PAUSED = "PAUSED"

class GoalCategory(str, Enum):
    EMERGENCY = "EMERGENCY"
    CAREER = "CAREER"
    TRAVEL = "TRAVEL"
    GADGET = "GADGET"
    OTHER = "OTHER"

class GoalEventType(str, Enum):
    CREATED = "goal.created"
    UPDATED = "goal.updated"
    COMPLETED = "goal.completed"

class AchievementType(str, Enum):
    FIRST_GOAL = "FIRST_GOAL"
    FIRST_CONTRIBUTION = "FIRST_CONTRIBUTION"
    GOAL_25_PERCENT = "GOAL_25_PERCENT"
    GOAL_50_PERCENT = "GOAL_50_PERCENT"
    GOAL_75_PERCENT = "GOAL_75_PERCENT"
    GOAL_COMPLETED = "GOAL_COMPLETED"
    SAVINGS_1000 = "SAVINGS_1000"
    SAVINGS_5000 = "SAVINGS_5000"
    SAVINGS_10000 = "SAVINGS_10000"
    # Зарезервировано: нет учета дней подряд, движок правил его не выдает.
    CONSISTENT_SAVER = "CONSISTENT_SAVER"

class AchievementKind(str, Enum):
    GOAL = "GOAL"
    SAVINGS = "SAVINGS"

class AchievementEventType(str, Enum):
    UNLOCKED = "achievement.unlocked"

class ExpenseCategory(str, Enum):
    FOOD = "FOOD"
    TRANSPORT = "TRANSPORT"
    HOSTEL = "HOSTEL"
    BOOKS = "BOOKS"
    ENTERTAINMENT = "ENTERTAINMENT"
    EMERGENCY = "EMERGENCY"
    UNCATEGORIZED = "UNCATEGORIZED"

class CategorizationSource(str, Enum):
    UPI = "upi"
    KEYWORDS = "keywords"
    FALLBACK = "fallback"
