"""
Structured internal diagnostics.

Sink failures are raised to the caller, but operators often want a trace of
them too. When ``core.internal_logging_enabled`` is set, `warn()` and
`debug()` hand one record per event to the writer, which by default prints it
to stderr as a JSON line. The writer never raises into the caller.
"""

from __future__ import annotations

import sys
import threading
import time
from typing import Any, Callable

import orjson

# Cached setting; None means "not read yet"
_internal_logging_enabled: bool | None = None

_RATE_LIMIT_WINDOW_SECONDS = 5.0
_rate_limit_lock = threading.Lock()
_rate_limit_last: dict[str, float] = {}


def _stderr_writer(record: dict[str, Any]) -> None:
    sys.stderr.write(orjson.dumps(record, default=str).decode("utf-8") + "\n")
    sys.stderr.flush()


_writer: Callable[[dict[str, Any]], None] = _stderr_writer


def is_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        try:
            from .settings import Settings

            _internal_logging_enabled = bool(
                Settings().core.internal_logging_enabled
            )
        except Exception:
            _internal_logging_enabled = False
    return _internal_logging_enabled


def set_writer_for_tests(writer: Callable[[dict[str, Any]], None]) -> None:
    global _writer
    _writer = writer


def _reset_for_tests() -> None:
    global _internal_logging_enabled, _writer
    _internal_logging_enabled = None
    _writer = _stderr_writer
    with _rate_limit_lock:
        _rate_limit_last.clear()


def _should_emit(rate_limit_key: str | None) -> bool:
    if rate_limit_key is None:
        return True
    now = time.monotonic()
    with _rate_limit_lock:
        last = _rate_limit_last.get(rate_limit_key)
        if last is not None and now - last < _RATE_LIMIT_WINDOW_SECONDS:
            return False
        _rate_limit_last[rate_limit_key] = now
        return True


def _emit(level: str, component: str, message: str, fields: dict[str, Any]) -> None:
    if not is_enabled():
        return
    if not _should_emit(fields.pop("_rate_limit_key", None)):
        return
    record = {
        "ts": time.time(),
        "level": level,
        "component": component,
        "message": message,
        **fields,
    }
    try:
        _writer(record)
    except Exception:
        # Diagnostics must never break the caller
        pass


def warn(component: str, message: str, **fields: Any) -> None:
    _emit("WARN", component, message, fields)


def debug(component: str, message: str, **fields: Any) -> None:
    _emit("DEBUG", component, message, fields)
