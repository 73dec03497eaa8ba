import json
import logging
from datetime import datetime, timezone

from ampp.core.config import settings
from ampp.core.context import get_request_id, get_user_id

NOISY_LOGGERS = ("uvicorn.access", "aiokafka", "asyncio", "arq.jobs")

class JsonFormatter(logging.Formatter):
    """Одна строка JSON на запись, с request_id и user_id текущего запроса."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": get_request_id(),
        }

        user_id = get_user_id()
        if user_id:
            entry["user_id"] = user_id

        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            entry.update(extra)

        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)

def setup_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(level or settings.APP.LOG_LEVEL)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
