import json
import logging

from users_api.core.logging import DevelopmentFormatter, LogContext, StructuredFormatter, get_logger


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.getLogger("users_api.test").makeRecord(
        "users_api.test", logging.INFO, __file__, 1, message, None, None
    )


def test_get_logger_namespacing():
    assert get_logger("users_api.services.user_service").name == "users_api.services.user_service"
    assert get_logger("scripts").name == "users_api.scripts"


def test_log_context_fields_in_json():
    with LogContext(request_id="r1", user_id="u1"):
        record = _record()

    data = json.loads(StructuredFormatter().format(record))
    assert data["message"] == "hello"
    assert data["request_id"] == "r1"
    assert data["user_id"] == "u1"


def test_log_context_is_scoped():
    with LogContext(user_id="u1"):
        with LogContext(request_id="r2"):
            inner = _record()
        outer = _record()
    after = _record()

    assert (inner.user_id, inner.request_id) == ("u1", "r2")
    assert outer.user_id == "u1" and not hasattr(outer, "request_id")
    assert not hasattr(after, "user_id")


def test_development_formatter_shows_context():
    with LogContext(request_id="r1", user_id="u1"):
        line = DevelopmentFormatter().format(_record("created"))

    assert "created" in line
    assert "req=r1" in line
    assert "user=u1" in line
