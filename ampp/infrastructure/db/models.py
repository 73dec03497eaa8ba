from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4
from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import validates

from ampp.domain.enums import GoalCategory, GoalStatus
from ampp.infrastructure.db.base import Base

JsonType = JSON().with_variant(JSONB(), "postgresql")

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Goal(Base):
    __tablename__ = "goals"

    goal_id = Column(Uuid, primary_key=True, default=uuid4, nullable=False)
    user_id = Column(Uuid, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1024), nullable=False, default="")
    category = Column(String(50), nullable=False, default=GoalCategory.OTHER.value)
    target_amount = Column(Numeric(12, 2), nullable=False)
    current_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    status = Column(String(50), nullable=False, default=GoalStatus.ACTIVE.value)
    target_date = Column(Date, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("ix_goals_user_status", "user_id", "status"),
    )

    @validates("target_amount", "current_amount")
    def validate_decimals(self, key, value):
        if not isinstance(value, Decimal):
            value = Decimal(str(value))

        if key == "target_amount" and value <= 0:
            raise ValueError("target_amount must be positive")

        if key == "current_amount" and value < 0:
            raise ValueError("current_amount must be non-negative")

        return value

    @property
    def progress_percent(self) -> Decimal:
        """Прогресс для отображения, ограничен сверху 100%."""
        progress = self.current_amount / self.target_amount * 100
        return min(progress, Decimal("100")).quantize(Decimal("0.01"))

    def apply_contribution(self, amount: Decimal) -> None:
        self.current_amount = self.current_amount + amount
        if self.current_amount >= self.target_amount:
            self.status = GoalStatus.COMPLETED.value
        self.updated_at = _utcnow()

    def set_status(self, status: GoalStatus) -> None:
        self.status = status.value
        self.updated_at = _utcnow()

class Achievement(Base):
    __tablename__ = "achievements"

    achievement_id = Column(Uuid, primary_key=True, default=uuid4, nullable=False)
    user_id = Column(Uuid, nullable=False, index=True)
    achievement_type = Column(String(50), nullable=False)
    scope_key = Column(String(64), nullable=False, default="")
    title = Column(String(255), nullable=False)
    description = Column(String(1024), nullable=False)
    icon = Column(String(50), nullable=False)
    kind = Column(String(20), nullable=False)
    context = Column(JsonType, nullable=True)
    unlocked_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "achievement_type",
            "scope_key",
            name="uq_achievements_user_type_scope",
        ),
        Index("ix_achievements_user_unlocked_at", "user_id", "unlocked_at"),
    )

class OutboxEvent(Base):
    __tablename__ = "outbox_events"

    event_id = Column(Uuid, primary_key=True, default=uuid4, nullable=False)
    topic = Column(String(255), nullable=False)
    event_type = Column(String(255), nullable=False)
    payload = Column(JsonType, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    retry_count = Column(Integer, default=0, nullable=False)
    status = Column(String(50), default="pending", nullable=False)
    trace_id = Column(String(255), nullable=True)
    next_retry_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_outbox_created_at_status", "created_at", "status"),
        Index("ix_outbox_processing", "status", "next_retry_at"),
    )
