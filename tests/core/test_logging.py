"""
Tests for vc_notify structured logging.
"""

from __future__ import annotations

import json
import logging
import sys

from vc_notify.core.logging import (
    VcNotifyFormatter,
    get_logger,
    reset_logging,
)


def _record(name: str, level: int, msg: str, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestVcNotifyFormatter:
    def test_text_format_basic(self):
        formatter = VcNotifyFormatter(json_output=False)

        record = _record("vc_notify.notifications.dispatcher", logging.INFO, "hello")

        formatted = formatter.format(record)

        assert formatted == "[VCN INFO] [dispatcher] hello"

    def test_text_format_with_exception(self):
        formatter = VcNotifyFormatter(json_output=False)
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        formatted = formatter.format(_record("vc_notify.test", logging.ERROR, "boom", exc_info))

        assert "ValueError" in formatted
        assert "Test error" in formatted

    def test_json_format_includes_extras(self):
        formatter = VcNotifyFormatter(json_output=True)
        record = _record("vc_notify.store.sqlite", logging.WARNING, "careful")
        record.guild_id = "100000000000000001"

        data = json.loads(formatter.format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "vc_notify.store.sqlite"
        assert data["message"] == "careful"
        assert data["guild_id"] == "100000000000000001"
        assert "timestamp" in data


class TestGetLogger:
    def test_loggers_are_cached(self):
        assert get_logger("vc_notify.cache_test") is get_logger("vc_notify.cache_test")

    def test_level_comes_from_settings(self, isolated_env, monkeypatch):
        monkeypatch.setenv("VC_NOTIFY_LOG_LEVEL", "debug")
        logger = get_logger("vc_notify.level_test")
        assert logger.level == logging.DEBUG

    def test_reset_detaches_shared_handler(self):
        logger = get_logger("vc_notify.handler_test")
        assert len(logger.handlers) == 1

        reset_logging()

        assert logger.handlers == []

    def test_reset_restores_propagation(self):
        logger = get_logger("vc_notify.propagate_test")
        assert logger.propagate is False

        reset_logging()

        assert logger.propagate is True
        assert logger.level == logging.NOTSET
