"""Unit tests for log formatting."""

import json
import logging

from src.logging_config import DevFormatter, JsonFormatter, RequestIdFilter, request_id_var


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("src.access", logging.INFO, __file__, 10, "Access denied", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    RequestIdFilter().filter(record)
    return record


class TestJsonFormatter:

    def test_includes_extra_fields(self):
        line = JsonFormatter().format(_record(reason="no_membership", role=None))
        data = json.loads(line)

        assert data["message"] == "Access denied"
        assert data["logger"] == "src.access"
        assert data["reason"] == "no_membership"
        assert "role" not in data
        assert "request_id" not in data

    def test_request_id_from_context(self):
        token = request_id_var.set("req-42")
        try:
            data = json.loads(JsonFormatter().format(_record()))
        finally:
            request_id_var.reset(token)
        assert data["request_id"] == "req-42"

    def test_unserializable_values_stringified(self):
        data = json.loads(JsonFormatter().format(_record(payload={1, 2})))
        assert isinstance(data["payload"], str)


class TestDevFormatter:

    def test_appends_extras(self):
        line = DevFormatter().format(_record(reason="policy_denied"))
        assert "Access denied" in line
        assert line.endswith("reason=policy_denied")
        assert "req=-" in line
