"""Structured logging for the policy engine.

Entries are JSON objects emitted through the stdlib ``logging`` tree
under ``field_policy``. The library installs no handlers; hosts decide
where entries go.
"""

import json
import logging
import time
from typing import Any

logger = logging.getLogger("field_policy")
logger.addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Child logger under the package logger (e.g. ``field_policy.compiler``)."""
    return logger.getChild(name)


def log_structured(log: logging.Logger, level: int, message: str, **fields: Any) -> None:
    """Emit a structured JSON log entry for observability."""
    if not log.isEnabledFor(level):
        return
    log_entry = {
        "timestamp": time.time(),
        "level": logging.getLevelName(level),
        "message": message,
        "source": log.name,
        **fields
    }
    log.log(level, json.dumps(log_entry, default=str))
