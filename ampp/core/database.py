from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ampp.core.config import settings

def get_db_engine(url: str | None = None) -> AsyncEngine:
    """Engine сервиса. Для SQLite параметры пула не передаются."""
    url = url or settings.DB.DB_URL
    options: dict = {"echo": settings.DB.DB_ECHO}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.DB.DB_POOL_SIZE,
            max_overflow=settings.DB.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
            pool_recycle=settings.DB.DB_POOL_RECYCLE,
        )
    return create_async_engine(url, **options)

def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
