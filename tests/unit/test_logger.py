"""
Structured Logger Tests
"""

import json
import logging
import sys

from chatroom.core.logger import JsonFormatter, StructuredLogger, get_logger
from chatroom.domain.models.chat import MessageType
from chatroom.infrastructure.config.settings import LoggingSettings


def _record(msg, exc_info=None):
    return logging.LogRecord("chatroom.test", logging.INFO, __file__, 10, msg, None, exc_info)


def test_formatter_flattens_event_payload():
    line = JsonFormatter().format(_record({"event_type": "participant.joined",
                                           "data": {"name": "Ana", "type": MessageType.STATUS}}))
    entry = json.loads(line)

    assert entry["level"] == "INFO"
    assert entry["logger"] == "chatroom.test"
    assert entry["event_type"] == "participant.joined"
    assert entry["data"] == {"name": "Ana", "type": "status"}


def test_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        line = JsonFormatter().format(_record({"event_type": "x"}, exc_info=sys.exc_info()))

    assert "RuntimeError: boom" in json.loads(line)["exception"]


def test_file_handler_writes_json_lines(tmp_path):
    config = LoggingSettings(console_enabled=False, file_enabled=True, log_dir=str(tmp_path))
    structured = StructuredLogger("chatroom.test.file", config, filename="events.jsonl")

    structured.info("sweep.completed", {"checked": 2, "evicted": ["Ana"]})
    for handler in structured.logger.handlers:
        handler.flush()

    lines = (tmp_path / "events.jsonl").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["data"]["evicted"] == ["Ana"]

    for handler in list(structured.logger.handlers):
        handler.close()
        structured.logger.removeHandler(handler)


def test_get_logger_is_cached(quiet_logging):
    assert get_logger("chatroom.test.cached", quiet_logging) is get_logger("chatroom.test.cached")


def test_handlers_not_duplicated():
    config = LoggingSettings(console_enabled=True, file_enabled=False)
    first = StructuredLogger("chatroom.test.dedup", config)
    StructuredLogger("chatroom.test.dedup", config)

    assert len(first.logger.handlers) == 1
