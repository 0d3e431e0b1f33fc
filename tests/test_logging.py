import json
import logging
from logging.handlers import RotatingFileHandler

from app.logging_config import JsonFormatter, setup_logging


def test_setup_logging_does_not_duplicate_handlers():
    setup_logging()
    root = logging.getLogger()
    before = sum(isinstance(h, RotatingFileHandler) for h in root.handlers)
    setup_logging(json_stdout=True)
    after = sum(isinstance(h, RotatingFileHandler) for h in root.handlers)
    assert before == after == 1


def test_json_formatter_carries_turn_context():
    record = logging.LogRecord("app.engine", logging.INFO, __file__, 1, "Advanced conversation", None, None)
    record.session = "conv-1"
    record.stage = "offer"
    record.end_call = False

    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "Advanced conversation"
    assert payload["logger"] == "app.engine"
    assert payload["session"] == "conv-1"
    assert payload["stage"] == "offer"
    assert payload["end_call"] is False
    assert "intent" not in payload
