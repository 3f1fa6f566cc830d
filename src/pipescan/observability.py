"""Observability: console or structured JSON logging for CI job logs."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Iterator

_GROUP_RULE = "=" * 60
_EXTRA_KEYS = ("scanner", "target", "exit_code", "duration_ms")

log = logging.getLogger("pipescan")


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------

class JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_dict["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                log_dict[key] = val
        return json.dumps(log_dict, default=str)


class ConsoleFormatter(logging.Formatter):
    """``<timestamp> [LEVEL] message``, readable in a CI job log."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s [%(levelname)s] %(message)s")


def setup_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure the root logger with console or JSON output."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if fmt == "json" else ConsoleFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Log groups
# ---------------------------------------------------------------------------

@contextmanager
def log_group(title: str) -> Iterator[None]:
    log.info(_GROUP_RULE)
    log.info(title)
    log.info(_GROUP_RULE)
    try:
        yield
    finally:
        log.info("")
