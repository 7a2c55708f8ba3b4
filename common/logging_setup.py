from __future__ import annotations
"""
Root logging for the aligner.

Two output formats share one record shape:
  json  {"ts": "2026-01-02T03:04:05.678Z", "level": "INFO", "logger": "aligner.pipeline",
         "msg": "Alignment finished", "fields": {...}}
  text  2026-01-02T03:04:05.678Z INFO aligner.pipeline: Alignment finished ok=True out=...

Structured fields are attached with `log.info(msg, extra=fields(key=value))`.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

FORMATS = ("json", "text")

_FIELDS_ATTR = "fields"


def fields(**kw: Any) -> Dict[str, Dict[str, Any]]:
    """Wrap keyword arguments for the `extra=` parameter of a log call."""
    return {_FIELDS_ATTR: kw}


def _record_fields(record: logging.LogRecord) -> Optional[Dict[str, Any]]:
    value = getattr(record, _FIELDS_ATTR, None)
    return value if isinstance(value, dict) else None


def _timestamp(record: logging.LogRecord) -> str:
    """Record creation time as UTC ISO-8601 with milliseconds."""
    dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; non-serializable field values go through str()."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "ts": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        extra = _record_fields(record)
        if extra:
            payload["fields"] = extra
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Single-line human readable output for interactive runs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        line = f"{_timestamp(record)} {record.levelname} {record.name}: {record.getMessage()}"
        extra = _record_fields(record)
        if extra:
            line += " " + " ".join(f"{k}={v}" for k, v in extra.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def _resolve_format(fmt: Optional[str]) -> str:
    name = (fmt or os.environ.get("LOG_FORMAT") or "json").lower()
    if name not in FORMATS:
        raise ValueError(f"Unknown log format '{name}' (expected one of {', '.join(FORMATS)})")
    return name


def setup_logging(
    level: Optional[str] = None,
    *,
    fmt: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Install a single stdout handler on the root logger.

    level: explicit value, else env LOG_LEVEL, else INFO. Unknown names fall back to INFO.
    fmt:   "json" or "text", else env LOG_FORMAT, else json.

    The first call installs the handler. Later calls only change what they are
    given explicitly, so module-level get_logger() never overrides the CLI.
    """
    root = logging.getLogger()
    handler = getattr(root, "_aligner_handler", None)

    if handler is not None and handler in root.handlers:
        if level is not None:
            root.setLevel(_resolve_level(level))
        if fmt is not None:
            handler.setFormatter(TextFormatter() if _resolve_format(fmt) == "text" else JsonFormatter())
        if stream is not None:
            handler.setStream(stream)
        return

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(TextFormatter() if _resolve_format(fmt) == "text" else JsonFormatter())
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))
    root._aligner_handler = handler  # type: ignore[attr-defined]


def get_logger(name: str) -> logging.Logger:
    """Module logger; installs the root handler on first use."""
    setup_logging()
    return logging.getLogger(name)
