"""Tests for the JSON-lines log formatter."""
import json
import logging

from log import JSONFormatter


def _record(**extra):
    record = logging.LogRecord("jplt.test", logging.INFO, __file__, 1, "History saved", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_known_extras_are_emitted():
    entry = json.loads(JSONFormatter().format(_record(component="history", record_id="abc", count=3)))
    assert entry["msg"] == "History saved"
    assert entry["level"] == "info"
    assert entry["component"] == "history"
    assert entry["record_id"] == "abc"
    assert entry["count"] == 3


def test_unlisted_extras_are_dropped():
    entry = json.loads(JSONFormatter().format(_record(component="auth", ip="10.0.0.1", duration_ms=12)))
    assert entry["component"] == "auth"
    assert "ip" not in entry
    assert "duration_ms" not in entry
