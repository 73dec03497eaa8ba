from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ampp.domain.enums import (
    AchievementKind,
    AchievementType,
    CategorizationSource,
    ExpenseCategory,
    GoalCategory,
    GoalStatus,
)
from ampp.domain.schemas.achievements import AchievementContext

def to_camel(string: str) -> str:
    parts = string.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])

class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

class HealthResponse(BaseModel):
    status: str
    components: dict[str, str]

class CreateGoalRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=255, description="Название цели")
    description: str = Field("", max_length=1024, description="Описание цели")
    target_amount: Decimal = Field(
        ..., gt=0, max_digits=12, decimal_places=2, description="Целевая сумма",
    )
    category: GoalCategory = Field(GoalCategory.OTHER, description="Категория цели")
    target_date: Optional[date] = Field(None, description="Дата достижения 'YYYY-MM-DD'")

class ContributionRequest(CamelModel):
    amount: Decimal = Field(
        ..., gt=0, max_digits=12, decimal_places=2, description="Сумма пополнения",
    )
    description: Optional[str] = Field(None, max_length=255, description="Комментарий")

class GoalResponse(CamelModel):
    goal_id: UUID = Field(..., description="ID цели")
    title: str = Field(..., description="Название цели")
    description: str = Field("", description="Описание цели")
    category: GoalCategory = Field(..., description="Категория цели")
    target_amount: Decimal = Field(..., description="Целевая сумма")
    current_amount: Decimal = Field(..., description="Текущая накопленная сумма")
    status: GoalStatus = Field(..., description="Статус цели")
    target_date: Optional[date] = Field(None, description="Дата достижения")
    progress_percent: Decimal = Field(..., description="Прогресс, не более 100")

class AchievementResponse(CamelModel):
    achievement_id: UUID
    achievement_type: AchievementType
    title: str
    description: str
    icon: str
    kind: AchievementKind
    unlocked_at: datetime
    context: AchievementContext | None = None

class GoalCreatedResponse(CamelModel):
    goal: GoalResponse
    achievements: list[AchievementResponse] = Field(default_factory=list)

class ContributionResponse(CamelModel):
    goal: GoalResponse
    total_savings: Decimal
    achievements: list[AchievementResponse] = Field(default_factory=list)

class AchievementsListResponse(CamelModel):
    total: int
    achievements: list[AchievementResponse]

class CategoryResponse(CamelModel):
    category: ExpenseCategory
    name: str
    icon: str
    color: str
    keywords: list[str]

class CategorizeRequest(CamelModel):
    description: str = Field(..., max_length=1024)
    merchant_name: Optional[str] = Field(None, max_length=255)
    upi_transaction_id: Optional[str] = Field(None, max_length=255)

class CategorizationResult(CamelModel):
    category: ExpenseCategory
    confidence: float
    reason: str
    source: CategorizationSource
    is_manual: bool = False

class TransactionToCategorize(CategorizeRequest):
    id: str
    is_manual_category: bool = False

class BatchCategorizeRequest(CamelModel):
    transactions: list[TransactionToCategorize]

class BatchCategorizeItem(CamelModel):
    id: str
    result: CategorizationResult

class CategorizationDebug(CamelModel):
    text: str
    matched_keywords: dict[ExpenseCategory, list[str]]
    result: CategorizationResult

class UpiParseRequest(CamelModel):
    description: str = Field(..., max_length=1024)

class UpiDescription(CamelModel):
    merchant_name: Optional[str] = None
    transaction_type: Optional[str] = None
