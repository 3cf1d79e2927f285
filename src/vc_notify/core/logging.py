"""
vc_notify Logging

Every component logs through ``get_logger(__name__)``. Loggers share one
stderr handler whose format follows the settings: plain text by default,
one JSON object per line when ``VC_NOTIFY_LOG_JSON`` is set.

Usage:
    from vc_notify.core.logging import get_logger

    logger = get_logger(__name__)
    logger.warning("Skipping notification, %s", reason)
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from .config import get_settings

PACKAGE = "vc_notify"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


class VcNotifyFormatter(logging.Formatter):
    """
    Text output: ``[VCN WARNING] [dispatcher] message``.

    JSON output carries timestamp, level, logger, message, any ``extra``
    fields and the formatted exception.
    """

    def __init__(self, json_output: bool = False) -> None:
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        if self.json_output:
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: logging.LogRecord) -> str:
        component = record.name.rsplit(".", 1)[-1]
        text = f"[VCN {record.levelname}] [{component}] {record.getMessage()}"
        if record.exc_info:
            text += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return text

    def _format_json(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="seconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            data["exception"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(data, default=str)


_loggers: dict[str, logging.Logger] = {}
_handler: Optional[logging.Handler] = None


def _get_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(VcNotifyFormatter(json_output=get_settings().log_json))
    return _handler


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger (typically ``get_logger(__name__)``).

    The level comes from ``VC_NOTIFY_LOG_LEVEL``; records do not propagate
    to the root logger.
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = logging.getLogger(name)
        logger.setLevel(get_settings().log_level_int)
        logger.addHandler(_get_handler())
        logger.propagate = False
        _loggers[name] = logger
    return logger


def reset_logging() -> None:
    """
    Return package loggers to stdlib defaults (for tests).

    Loggers propagate again with level NOTSET and lose the shared handler,
    so pytest's caplog sees their records. The logger cache is kept; the
    handler is rebuilt on the next new logger.
    """
    global _handler

    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger):
            continue
        if name == PACKAGE or name.startswith(PACKAGE + "."):
            logger.propagate = True
            logger.setLevel(logging.NOTSET)
            if _handler is not None:
                logger.removeHandler(_handler)

    _handler = None
