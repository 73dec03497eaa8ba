import json
import logging
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from ampp.core.context import bind_user_id, get_request_id, set_request_id
from ampp.core.logging import JsonFormatter
from ampp.domain.enums import GoalStatus
from ampp.utils.serialization import normalize_payload, to_json_bytes

def test_normalize_payload():
    data = {
        "amount": Decimal("12.50"),
        "goal_id": UUID("12345678-1234-5678-1234-567812345678"),
        "status": GoalStatus.COMPLETED,
        "at": datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        "items": (Decimal("1"), "x"),
    }
    assert normalize_payload(data) == {
        "amount": "12.50",
        "goal_id": "12345678-1234-5678-1234-567812345678",
        "status": "COMPLETED",
        "at": "2026-01-02T03:04:05+00:00",
        "items": ["1", "x"],
    }

def test_unknown_type_is_rejected():
    with pytest.raises(TypeError):
        to_json_bytes({"value": object()})

def test_set_request_id_generates_uuid():
    request_id = set_request_id()
    assert UUID(request_id)
    assert get_request_id() == request_id

def test_json_formatter():
    set_request_id("req-1")
    bind_user_id(UUID("12345678-1234-5678-1234-567812345678"))
    record = logging.LogRecord(
        name="ampp.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Goal %s created",
        args=("g-1",),
        exc_info=None,
    )
    record.extra = {"plan": "basic"}

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Goal g-1 created"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "ampp.test"
    assert payload["request_id"] == "req-1"
    assert payload["user_id"] == "12345678-1234-5678-1234-567812345678"
    assert payload["plan"] == "basic"
