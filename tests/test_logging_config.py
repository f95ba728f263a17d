import json
import logging

from menubot.logging_config import JSONFormatter, TextFormatter, get_logger


def make_record(context=None):
    record = logging.LogRecord("menubot.dispatcher", logging.WARNING, __file__, 1, "Send failed", None, None)
    if context is not None:
        record.context = context
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["level"] == "WARNING"
        assert data["service"] == "menubot"
        assert data["logger"] == "menubot.dispatcher"
        assert data["message"] == "Send failed"
        assert "context" not in data

    def test_seller_id_lifted_from_context(self):
        data = json.loads(JSONFormatter().format(make_record({"seller_id": "abc", "attempts": 4})))
        assert data["seller_id"] == "abc"
        assert data["context"]["attempts"] == 4


class TestTextFormatter:
    def test_includes_context(self):
        line = TextFormatter().format(make_record({"attempts": 4}))
        assert "WARNING" in line
        assert "Send failed" in line
        assert "'attempts': 4" in line


def test_get_logger_namespace():
    assert get_logger("inbound_service").name == "menubot.inbound_service"
