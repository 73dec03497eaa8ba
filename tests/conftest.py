import pytest
import pytest_asyncio
from decimal import Decimal
from uuid import uuid4
from unittest.mock import AsyncMock, MagicMock
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from ampp.api.dependencies import get_uow
from ampp.domain.schemas.achievements import GoalSnapshot
from ampp.infrastructure.db import models  # noqa: F401
from ampp.infrastructure.db.base import Base
from ampp.infrastructure.db.uow import UnitOfWork
from ampp.main import app as main_app

# Фикстура тестового движка БД
@pytest_asyncio.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()

@pytest.fixture(scope="function")
def session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

@pytest.fixture(scope="function")
def uow(session_maker) -> UnitOfWork:
    return UnitOfWork(session_maker)

@pytest.fixture
def user_id():
    return uuid4()

@pytest.fixture
def make_goal():
    """Фабрика снимков цели."""
    def _make(current="0", target="1000", title="New laptop"):
        return GoalSnapshot(
            goal_id=uuid4(),
            title=title,
            target_amount=Decimal(target),
            current_amount=Decimal(current),
        )
    return _make

# UoW без БД: репозитории заменены моками
@pytest.fixture
def fake_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)
    uow.achievements.check_and_unlock = AsyncMock(side_effect=lambda row: row)
    uow.achievements.get_by_user_id = AsyncMock(return_value=[])
    uow.outbox.add_event = MagicMock()
    return uow

@pytest_asyncio.fixture(scope="function")
async def client(session_maker):
    main_app.dependency_overrides[get_uow] = lambda: UnitOfWork(session_maker)

    async with AsyncClient(
        transport=ASGITransport(app=main_app),
        base_url="http://test",
    ) as ac:
        yield ac

    main_app.dependency_overrides.clear()
