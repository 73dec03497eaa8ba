from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from ampp.api import dependencies
from ampp.core.config import settings
from ampp.domain.categories import CATEGORY_CONFIG
from ampp.domain.enums import GoalStatus
from ampp.domain.schemas import api as schemas
from ampp.services.achievements.coordinator import AchievementUnlockCoordinator
from ampp.services.classification.service import CategorizationService
from ampp.services.goals import GoalService

router = APIRouter()

@router.get(
    "/health",
    response_model=schemas.HealthResponse,
    summary="Health check сервиса",
)
async def health_check(request: Request):
    status_map = {"db": "unknown"}

    engine = getattr(request.app.state, "engine", None)
    if not engine:
        status_map["db"] = "disconnected"
    else:
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            status_map["db"] = "ok"
        except Exception:
            status_map["db"] = "failed"

    if status_map["db"] != "ok":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "components": status_map},
        )

    return schemas.HealthResponse(status="ok", components=status_map)

@router.post(
    "/goals",
    response_model=schemas.GoalCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Goals"],
    summary="Создание цели",
)
async def create_goal(
    request: schemas.CreateGoalRequest = Body(...),
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: GoalService = Depends(dependencies.get_goal_service),
):
    return await service.create_goal(user_id, request)

@router.get(
    "/goals",
    response_model=List[schemas.GoalResponse],
    tags=["Goals"],
    summary="Список целей",
)
async def list_goals(
    goal_status: Optional[GoalStatus] = Query(
        None, alias="status", description="Фильтр по статусу",
    ),
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: GoalService = Depends(dependencies.get_goal_service),
):
    return await service.list_goals(user_id, goal_status)

@router.get(
    "/goals/{goal_id}",
    response_model=schemas.GoalResponse,
    tags=["Goals"],
    summary="Цель по id",
)
async def get_goal(
    goal_id: UUID = Path(...),
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: GoalService = Depends(dependencies.get_goal_service),
):
    return await service.get_goal(user_id, goal_id)

@router.post(
    "/goals/{goal_id}/contributions",
    response_model=schemas.ContributionResponse,
    tags=["Goals"],
    summary="Пополнение цели",
)
async def add_contribution(
    goal_id: UUID = Path(...),
    request: schemas.ContributionRequest = Body(...),
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: GoalService = Depends(dependencies.get_goal_service),
):
    return await service.add_contribution(user_id, goal_id, request)

@router.post(
    "/goals/{goal_id}/pause",
    response_model=schemas.GoalResponse,
    tags=["Goals"],
    summary="Пауза цели",
)
async def pause_goal(
    goal_id: UUID = Path(...),
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: GoalService = Depends(dependencies.get_goal_service),
):
    return await service.pause_goal(user_id, goal_id)

@router.post(
    "/goals/{goal_id}/resume",
    response_model=schemas.GoalResponse,
    tags=["Goals"],
    summary="Возобновление цели",
)
async def resume_goal(
    goal_id: UUID = Path(...),
    user_id: UUID = Depends(dependencies.get_current_user_id),
    service: GoalService = Depends(dependencies.get_goal_service),
):
    return await service.resume_goal(user_id, goal_id)

async def _hydrated(coordinator: AchievementUnlockCoordinator) -> AchievementUnlockCoordinator:
    await coordinator.hydrate()
    if coordinator.error:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=coordinator.error,
        )
    return coordinator

@router.get(
    "/achievements",
    response_model=schemas.AchievementsListResponse,
    tags=["Achievements"],
    summary="Все полученные достижения",
)
async def list_achievements(
    coordinator: AchievementUnlockCoordinator = Depends(dependencies.get_coordinator),
):
    await _hydrated(coordinator)
    return schemas.AchievementsListResponse(
        total=coordinator.count(),
        achievements=[
            schemas.AchievementResponse.model_validate(record)
            for record in coordinator.list_unlocked()
        ],
    )

@router.get(
    "/achievements/recent",
    response_model=schemas.AchievementsListResponse,
    tags=["Achievements"],
    summary="Достижения за последние дни",
)
async def recent_achievements(
    days: int = Query(settings.APP.RECENT_ACHIEVEMENTS_DAYS, ge=1, le=365),
    coordinator: AchievementUnlockCoordinator = Depends(dependencies.get_coordinator),
):
    await _hydrated(coordinator)
    recent = coordinator.recently_unlocked(days)
    return schemas.AchievementsListResponse(
        total=len(recent),
        achievements=[
            schemas.AchievementResponse.model_validate(record) for record in recent
        ],
    )

@router.get(
    "/categories",
    response_model=List[schemas.CategoryResponse],
    tags=["Classification"],
    summary="Справочник категорий расходов",
)
async def list_categories():
    return [
        schemas.CategoryResponse(
            category=category,
            name=config.name,
            icon=config.icon,
            color=config.color,
            keywords=list(config.keywords),
        )
        for category, config in CATEGORY_CONFIG.items()
    ]

@router.post(
    "/classification/categorize",
    response_model=schemas.CategorizationResult,
    tags=["Classification"],
    summary="Категоризация транзакции",
)
async def categorize(
    request: schemas.CategorizeRequest = Body(...),
    service: CategorizationService = Depends(dependencies.get_categorization_service),
):
    return service.categorize(
        request.description,
        request.merchant_name,
        request.upi_transaction_id,
    )

@router.post(
    "/classification/categorize/batch",
    response_model=List[schemas.BatchCategorizeItem],
    tags=["Classification"],
    summary="Перекатегоризация пачки транзакций",
)
async def categorize_batch(
    request: schemas.BatchCategorizeRequest = Body(...),
    service: CategorizationService = Depends(dependencies.get_categorization_service),
):
    return service.batch_categorize(request.transactions)

@router.post(
    "/classification/debug",
    response_model=schemas.CategorizationDebug,
    tags=["Classification"],
    summary="Разбор категоризации",
)
async def categorize_debug(
    request: schemas.CategorizeRequest = Body(...),
    service: CategorizationService = Depends(dependencies.get_categorization_service),
):
    return service.debug(
        request.description,
        request.merchant_name,
        request.upi_transaction_id,
    )

@router.post(
    "/classification/upi/parse",
    response_model=schemas.UpiDescription,
    tags=["Classification"],
    summary="Разбор описания UPI-платежа",
)
async def parse_upi(
    request: schemas.UpiParseRequest = Body(...),
    service: CategorizationService = Depends(dependencies.get_categorization_service),
):
    return service.parse_upi_description(request.description)
