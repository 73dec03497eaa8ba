import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import SQLAlchemyError

from ampp.api import middleware, routes
from ampp.core.config import settings
from ampp.core.database import get_db_engine, get_session_factory
from ampp.core.exceptions import AmppServiceError
from ampp.core.logging import setup_logging

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Engine и фабрика сессий живут все время работы приложения."""
    setup_logging()

    engine = get_db_engine()
    app.state.engine = engine
    app.state.db_session_maker = get_session_factory(engine)
    logger.info("AMPP service started, env=%s", settings.APP.ENV)

    try:
        yield
    finally:
        await engine.dispose()
        logger.info("AMPP service stopped")

def _request_info(request: Request) -> dict:
    return {"extra": {"path": request.url.path, "method": request.method}}

app = FastAPI(
    title="AMPP Achievements Service",
    description="Цели накопления, достижения и категоризация расходов",
    version="1.0",
    lifespan=lifespan,
    docs_url=f"{API_PREFIX}/docs",
    openapi_url=f"{API_PREFIX}/openapi.json",
)

app.middleware("http")(middleware.request_context_middleware)

@app.exception_handler(AmppServiceError)
async def service_error_handler(request: Request, exc: AmppServiceError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("%s: %s", type(exc).__name__, exc, extra=_request_info(request))
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error: %s", exc, exc_info=True, extra=_request_info(request))
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.critical("Unhandled exception: %s", exc, exc_info=True, extra=_request_info(request))
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

app.include_router(routes.router, prefix=API_PREFIX)
Instrumentator().instrument(app).expose(app)
