from contextvars import ContextVar
from uuid import UUID, uuid4

REQUEST_ID_HEADER = "X-Request-ID"
USER_ID_HEADER = "X-User-Id"

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="unknown")
user_id_ctx: ContextVar[str | None] = ContextVar("user_id", default=None)

def get_request_id() -> str:
    return request_id_ctx.get()

def set_request_id(req_id: str | None = None) -> str:
    """Берет id из заголовка или генерирует новый."""
    req_id = req_id or str(uuid4())
    request_id_ctx.set(req_id)
    return req_id

def get_user_id() -> str | None:
    return user_id_ctx.get()

def bind_user_id(user_id: UUID) -> None:
    user_id_ctx.set(str(user_id))
