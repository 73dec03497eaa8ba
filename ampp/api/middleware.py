import logging
import time
from fastapi import Request

from ampp.core.context import REQUEST_ID_HEADER, set_request_id

logger = logging.getLogger(__name__)

async def request_context_middleware(request: Request, call_next):
    """Проставляет request id в контекст и ответ, пишет строку access-лога."""
    request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
    started = time.perf_counter()

    response = await call_next(request)

    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "%s %s -> %s",
        request.method,
        request.url.path,
        response.status_code,
        extra={"extra": {"duration_ms": round((time.perf_counter() - started) * 1000, 2)}},
    )
    return response
