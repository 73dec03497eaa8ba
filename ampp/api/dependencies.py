from uuid import UUID
from fastapi import Depends, HTTPException, Request, status

from ampp.core.context import USER_ID_HEADER, bind_user_id
from ampp.infrastructure.db.uow import UnitOfWork
from ampp.services.achievements.coordinator import AchievementUnlockCoordinator
from ampp.services.achievements.service import AchievementService
from ampp.services.classification.service import CategorizationService
from ampp.services.goals import GoalService

async def get_uow(request: Request) -> UnitOfWork:
    """Создает UnitOfWork с фабрикой сессий из app.state."""
    db_session_maker = getattr(request.app.state, "db_session_maker", None)
    if not db_session_maker:
        raise HTTPException(status_code=500, detail="Database session factory not available")

    return UnitOfWork(db_session_maker)

async def get_current_user_id(request: Request) -> UUID:
    """
    Извлекает user_id из заголовка X-User-Id, который устанавливает API Gateway.
    """
    raw_user_id = request.headers.get(USER_ID_HEADER)
    if not raw_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User ID header missing"
        )
    try:
        user_id = UUID(raw_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid User ID format"
        )
    bind_user_id(user_id)
    return user_id

def get_coordinator(
    uow: UnitOfWork = Depends(get_uow),
    user_id: UUID = Depends(get_current_user_id),
) -> AchievementUnlockCoordinator:
    """Координатор живет в пределах одного запроса."""
    return AchievementUnlockCoordinator(uow, user_id)

def get_goal_service(
    uow: UnitOfWork = Depends(get_uow),
    coordinator: AchievementUnlockCoordinator = Depends(get_coordinator),
) -> GoalService:
    return GoalService(uow, AchievementService(coordinator))

def get_categorization_service() -> CategorizationService:
    return CategorizationService()
