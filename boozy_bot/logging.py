"""Log setup for the listener and worker processes.

Each process logs under its role (``listen`` or ``work``) to its own rotating
file, so the two never rotate the same file. While the worker handles a
queued update, every record carries that update's key and attempt number.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from boozy_bot.config import get_log_path, load_config

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(role)s | %(update_key)s | %(name)s | %(message)s"
# HTTP clients log every request at INFO.
NOISY_LOGGERS = ("httpx", "urllib3")

_update_key: ContextVar[str] = ContextVar("update_key", default="")
_attempt: ContextVar[int] = ContextVar("attempt", default=0)


def current_update_key() -> str:
    return _update_key.get()


@contextmanager
def update_context(key: str, attempt: int = 0) -> Generator[str, None, None]:
    """Tag log records emitted inside the block with an update key and attempt."""
    key_token = _update_key.set(key)
    attempt_token = _attempt.set(int(attempt))
    try:
        yield key
    finally:
        _attempt.reset(attempt_token)
        _update_key.reset(key_token)


class UpdateContextFilter(logging.Filter):
    def __init__(self, role: str = ""):
        super().__init__()
        self.role = role or "-"

    def filter(self, record: logging.LogRecord) -> bool:
        record.role = self.role
        record.update_key = _update_key.get() or "-"
        record.attempt = _attempt.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line; update fields appear only inside an update."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "role": getattr(record, "role", "-"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        update_key = getattr(record, "update_key", "-")
        if update_key != "-":
            entry["update"] = update_key
            entry["attempt"] = getattr(record, "attempt", 0)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def role_log_path(config: dict[str, Any], role: str = "") -> Path:
    base = get_log_path(config)
    if not role:
        return base
    return base.with_name(f"{base.stem}-{role}{base.suffix}")


def configure_logging(config: dict[str, Any] | None = None, role: str = "") -> Path:
    """Install stream and file handlers on the root logger and return the log file path.

    Calling it again replaces the handlers it installed earlier.
    """
    cfg = config or load_config()
    log_cfg = cfg.get("logging", {})
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)

    log_path = role_log_path(cfg, role)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in [h for h in root.handlers if getattr(h, "_boozy_bot", False)]:
        root.removeHandler(handler)
        handler.close()

    fmt: logging.Formatter
    if log_cfg.get("json_format", False):
        fmt = StructuredFormatter()
    else:
        fmt = logging.Formatter(TEXT_FORMAT)
    context_filter = UpdateContextFilter(role)

    stream = logging.StreamHandler()
    file_handler = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
    for handler in (stream, file_handler):
        handler.setFormatter(fmt)
        handler.addFilter(context_filter)
        handler._boozy_bot = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_path
