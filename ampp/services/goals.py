import logging
from decimal import Decimal
from uuid import UUID, uuid4

from ampp.core import exceptions, metrics
from ampp.core.config import settings
from ampp.domain.enums import GoalEventType, GoalStatus
from ampp.domain.schemas import api as api_schemas
from ampp.domain.schemas.achievements import GoalSnapshot
from ampp.infrastructure.db import models, uow
from ampp.services.achievements.service import AchievementService

logger = logging.getLogger(__name__)

def _goal_event(goal: models.Goal, **kwargs) -> dict:
    return {
        "goal_id": goal.goal_id,
        "user_id": goal.user_id,
        "current_amount": goal.current_amount,
        "target_amount": goal.target_amount,
        "status": goal.status,
        **kwargs,
    }

class GoalService:
    """
    Сервис целей накопления.

    После каждого изменения цели снимает снимок состояния и передает его в
    AchievementService. Проверка достижений идет отдельной транзакцией после
    фиксации изменения цели.
    """

    def __init__(
        self,
        uow_goals: uow.UnitOfWork,
        achievements: AchievementService,
    ):
        self.uow_goals = uow_goals
        self.achievements = achievements

    async def create_goal(
        self,
        user_id: UUID,
        request: api_schemas.CreateGoalRequest,
    ) -> api_schemas.GoalCreatedResponse:
        title = request.title.strip()
        if not title:
            raise exceptions.InvalidGoalDataError("Goal title must not be blank")

        goal = models.Goal(
            goal_id=uuid4(),
            user_id=user_id,
            title=title,
            description=request.description.strip(),
            category=request.category.value,
            target_amount=request.target_amount,
            current_amount=Decimal("0"),
            status=GoalStatus.ACTIVE.value,
            target_date=request.target_date,
        )

        async with self.uow_goals:
            existing_goal_count = await self.uow_goals.goals.count_by_user(user_id)
            self.uow_goals.goals.create(goal)
            self.uow_goals.outbox.add_event(
                topic=settings.KAFKA.TOPIC_GOAL_EVENTS,
                event_type=GoalEventType.CREATED.value,
                event_data=_goal_event(goal, title=goal.title),
            )

        metrics.GOALS_CREATED_TOTAL.inc()
        logger.info("Goal %s created for user %s", goal.goal_id, user_id)

        unlocked = await self.achievements.check_goal_created(
            existing_goal_count,
            GoalSnapshot.model_validate(goal),
        )

        return api_schemas.GoalCreatedResponse(
            goal=api_schemas.GoalResponse.model_validate(goal),
            achievements=[
                api_schemas.AchievementResponse.model_validate(record)
                for record in unlocked
            ],
        )

    async def add_contribution(
        self,
        user_id: UUID,
        goal_id: UUID,
        request: api_schemas.ContributionRequest,
    ) -> api_schemas.ContributionResponse:
        async with self.uow_goals:
            goal = await self.uow_goals.goals.get_for_update(user_id, goal_id)
            if not goal:
                raise exceptions.GoalNotFoundError("Goal not found")

            was_completed = goal.status == GoalStatus.COMPLETED.value
            goal.apply_contribution(request.amount)

            self.uow_goals.outbox.add_event(
                topic=settings.KAFKA.TOPIC_GOAL_EVENTS,
                event_type=GoalEventType.UPDATED.value,
                event_data=_goal_event(goal, contribution=request.amount),
            )
            if not was_completed and goal.status == GoalStatus.COMPLETED.value:
                self.uow_goals.outbox.add_event(
                    topic=settings.KAFKA.TOPIC_GOAL_EVENTS,
                    event_type=GoalEventType.COMPLETED.value,
                    event_data=_goal_event(goal),
                )
                logger.info("Goal %s completed", goal.goal_id)

            total_savings = await self.uow_goals.goals.get_total_savings(user_id)
            snapshot = GoalSnapshot.model_validate(goal)
            goal_response = api_schemas.GoalResponse.model_validate(goal)

        metrics.GOAL_CONTRIBUTIONS_TOTAL.inc()

        unlocked = await self.achievements.check_contribution(
            snapshot,
            request.amount,
            total_savings,
        )

        return api_schemas.ContributionResponse(
            goal=goal_response,
            total_savings=total_savings,
            achievements=[
                api_schemas.AchievementResponse.model_validate(record)
                for record in unlocked
            ],
        )

    async def get_goal(self, user_id: UUID, goal_id: UUID) -> api_schemas.GoalResponse:
        async with self.uow_goals:
            goal = await self.uow_goals.goals.get_by_id(user_id, goal_id)
            if not goal:
                raise exceptions.GoalNotFoundError("Goal not found")
            return api_schemas.GoalResponse.model_validate(goal)

    async def pause_goal(self, user_id: UUID, goal_id: UUID) -> api_schemas.GoalResponse:
        return await self._change_status(
            user_id, goal_id, GoalStatus.PAUSED, allowed_from=GoalStatus.ACTIVE,
        )

    async def resume_goal(self, user_id: UUID, goal_id: UUID) -> api_schemas.GoalResponse:
        return await self._change_status(
            user_id, goal_id, GoalStatus.ACTIVE, allowed_from=GoalStatus.PAUSED,
        )

    async def _change_status(
        self,
        user_id: UUID,
        goal_id: UUID,
        new_status: GoalStatus,
        allowed_from: GoalStatus,
    ) -> api_schemas.GoalResponse:
        """Повторный перевод в тот же статус ничего не меняет."""
        async with self.uow_goals:
            goal = await self.uow_goals.goals.get_for_update(user_id, goal_id)
            if not goal:
                raise exceptions.GoalNotFoundError("Goal not found")

            if goal.status != new_status.value:
                if goal.status != allowed_from.value:
                    raise exceptions.InvalidGoalDataError(
                        f"Cannot change goal status from {goal.status} to {new_status.value}"
                    )
                goal.set_status(new_status)
                self.uow_goals.outbox.add_event(
                    topic=settings.KAFKA.TOPIC_GOAL_EVENTS,
                    event_type=GoalEventType.UPDATED.value,
                    event_data=_goal_event(goal),
                )
                logger.info("Goal %s is now %s", goal.goal_id, new_status.value)

            return api_schemas.GoalResponse.model_validate(goal)

    async def list_goals(
        self,
        user_id: UUID,
        status: GoalStatus | None = None,
    ) -> list[api_schemas.GoalResponse]:
        async with self.uow_goals:
            goals = await self.uow_goals.goals.list_by_user(
                user_id, status.value if status else None,
            )
            return [api_schemas.GoalResponse.model_validate(goal) for goal in goals]

    async def get_total_savings(self, user_id: UUID) -> Decimal:
        async with self.uow_goals:
            return await self.uow_goals.goals.get_total_savings(user_id)
