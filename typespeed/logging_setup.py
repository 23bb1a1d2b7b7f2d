"""Logging setup for the typing test."""
from __future__ import annotations

import logging
import pathlib
import sys
from typing import Any, Optional


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str | pathlib.Path] = None,
) -> None:
    """Configure root logging with a deterministic format.

    curses owns the terminal while a test runs, so callers running the UI
    should pass ``log_file``; otherwise records go to stderr.
    """
    level_value = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler]
    if log_file is not None:
        path_obj = pathlib.Path(log_file)
        path_obj.parent.mkdir(parents=True, exist_ok=True)
        handlers = [logging.FileHandler(path_obj, encoding="utf-8")]
    else:
        handlers = [logging.StreamHandler(sys.stderr)]

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level_value, handlers=handlers, force=True)


class _JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter (stdlib only)."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return _json_dumps(payload)


def _json_dumps(payload: dict[str, Any]) -> str:
    import json

    return json.dumps(payload, sort_keys=True)
