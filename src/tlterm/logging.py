"""Device log for tlterm.

Degradations the device recovers from on its own (a missing document, a
malformed number, a settings reset, a failed blob write) are written here
as JSON lines instead of being raised.  ``tlterm logs`` reads the file
back through ``read_log_tail`` and ``format_entry``.
"""

from __future__ import annotations

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any


DEVICE_LOG = os.environ.get("TLTERM_LOG_FILE", "/tmp/tlterm.log")

MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3


class _JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: ``timestamp`` (millisecond ISO-8601), ``level``, ``logger``,
    ``message``, plus ``context`` and ``exception`` when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        stamp = self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S.")
        entry: dict[str, Any] = {
            "timestamp": f"{stamp}{int(record.msecs):03d}",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        ctx = getattr(record, "context", None)
        if ctx:
            entry["context"] = ctx
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_handler(
    path: str,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
) -> RotatingFileHandler:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    handler = RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(_JsonFormatter())
    return handler


# (logger name, file) pairs that already carry a handler
_configured: set[str] = set()


def get_logger(
    name: str,
    log_file: str = DEVICE_LOG,
    level: int = logging.DEBUG,
) -> logging.Logger:
    """Logger *name* writing JSON lines to *log_file*.

    The file handler is attached once per (name, file).  If the file cannot
    be created the logger is still returned, without a handler.
    """
    logger = logging.getLogger(name)
    key = f"{name}:{log_file}"
    if key in _configured:
        return logger
    try:
        handler = _make_handler(log_file)
    except OSError:
        handler = None
    if handler is not None:
        handler.setLevel(level)
        logger.addHandler(handler)
    logger.setLevel(level)
    _configured.add(key)
    return logger


def log_context(
    *,
    path: str = "",
    key: str = "",
    screen: str = "",
    reason: str = "",
    **extra: Any,
) -> dict[str, Any]:
    """``context`` payload for a record; empty fields are left out.

    ``path`` is a document path, ``key`` a blob-store key, ``screen`` a
    menu screen.  Anything else goes in as given.
    """
    ctx: dict[str, Any] = {}
    for name, value in (("path", path), ("key", key), ("screen", screen), ("reason", reason)):
        if value:
            ctx[name] = value
    ctx.update(extra)
    return ctx


def parse_log_line(line: str) -> dict[str, Any] | None:
    """Decode one JSON log line, or None for blank and non-JSON lines."""
    line = line.strip()
    if not line:
        return None
    try:
        return json.loads(line)
    except (json.JSONDecodeError, ValueError):
        return None


def format_entry(line: str) -> str:
    """Render one log line for the console; non-JSON lines pass through."""
    entry = parse_log_line(line)
    if not isinstance(entry, dict):
        return line
    ctx = entry.get("context")
    suffix = f"  {ctx}" if ctx else ""
    return (f"{entry.get('timestamp', '')} {entry.get('level', ''):<7} "
            f"{entry.get('logger', '')}: {entry.get('message', '')}{suffix}")


def read_log_tail(path: str = DEVICE_LOG, lines: int = 50) -> list[str]:
    """Last *lines* lines of *path*; empty when the file is missing."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read().strip()
    except FileNotFoundError:
        return []
    if not content:
        return []
    return content.split("\n")[-lines:]
