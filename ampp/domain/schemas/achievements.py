"""
Доменные схемы достижений.

Контекст достижения: tagged union по achievement_type, каждый вариант несет
только те поля, которые нужны своему типу. Для достижений, которые выдаются
отдельно по каждой цели, scope_key равен goal_id, для остальных пустой строке.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ampp.domain.enums import AchievementKind, AchievementType

GLOBAL_SCOPE = ""

class _ContextBase(BaseModel):
    # В хранилище и событиях поля в snake_case, в ответах API в camelCase
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @property
    def scope_key(self) -> str:
        return GLOBAL_SCOPE

class FirstGoalContext(_ContextBase):
    achievement_type: Literal["FIRST_GOAL"] = "FIRST_GOAL"
    goal_id: UUID
    goal_title: str

class FirstContributionContext(_ContextBase):
    achievement_type: Literal["FIRST_CONTRIBUTION"] = "FIRST_CONTRIBUTION"
    goal_id: UUID
    goal_title: str

class GoalProgressContext(_ContextBase):
    achievement_type: Literal[
        "GOAL_25_PERCENT",
        "GOAL_50_PERCENT",
        "GOAL_75_PERCENT",
        "GOAL_COMPLETED",
    ]
    goal_id: UUID
    goal_title: str

    @property
    def scope_key(self) -> str:
        return str(self.goal_id)

class SavingsContext(_ContextBase):
    achievement_type: Literal["SAVINGS_1000", "SAVINGS_5000", "SAVINGS_10000"]
    total_savings: Decimal

class ConsistentSaverContext(_ContextBase):
    achievement_type: Literal["CONSISTENT_SAVER"] = "CONSISTENT_SAVER"
    consecutive_days: int = Field(..., ge=1)

AchievementContext = Annotated[
    Union[
        FirstGoalContext,
        FirstContributionContext,
        GoalProgressContext,
        SavingsContext,
        ConsistentSaverContext,
    ],
    Field(discriminator="achievement_type"),
]

class GoalSnapshot(BaseModel):
    """Снимок состояния цели на момент события."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    goal_id: UUID
    title: str
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(..., ge=0)

    @property
    def progress_percent(self) -> Decimal:
        return self.current_amount / self.target_amount * 100

class AchievementRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    achievement_id: UUID
    user_id: UUID
    achievement_type: AchievementType
    scope_key: str = GLOBAL_SCOPE
    title: str
    description: str
    icon: str
    kind: AchievementKind
    unlocked_at: datetime
    context: AchievementContext | None = None

    @field_validator("unlocked_at")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        # SQLite отдает naive datetime даже для DateTime(timezone=True)
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
