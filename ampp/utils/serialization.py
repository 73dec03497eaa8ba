"""
JSON для событий outbox.

Денежные суммы уходят строками, как в pydantic model_dump(mode="json"),
чтобы события целей и достижений имели одинаковый формат и не теряли копейки.
"""
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

def to_primitive(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    raise TypeError(f"Cannot serialize {type(obj).__name__} to JSON")

def normalize_payload(obj: Any) -> Any:
    """Приводит payload к JSON-совместимым типам для колонки JSON/JSONB."""
    if isinstance(obj, dict):
        return {str(key): normalize_payload(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [normalize_payload(value) for value in obj]
    if obj is None or isinstance(obj, (bool, int, float, str)) and not isinstance(obj, Enum):
        return obj
    return to_primitive(obj)

def to_json_bytes(data: Any) -> bytes:
    return json.dumps(data, default=to_primitive, ensure_ascii=False).encode("utf-8")
