"""
Structured internal diagnostics.

Non-fatal conditions inside logtrunc (contained plugin failures, loader
warnings, per-field truncation notices) are reported as small structured
payloads rather than raised. Emission is off by default and is enabled with
``LOGTRUNC_CORE__INTERNAL_LOGGING_ENABLED=true``.

Payloads are rate limited per ``(component, message)`` key so a hot path
cannot flood stderr.
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from typing import Any, Callable

import orjson

Writer = Callable[[dict[str, Any]], None]

_logger = logging.getLogger("logtrunc.diagnostics")

# Cached on first use; reset by tests via _reset_for_tests()
_internal_logging_enabled: bool | None = None

_RATE_WINDOW_SECONDS = 5.0
_RATE_MAX_PER_WINDOW = 10
_rate_lock = threading.Lock()
_rate_state: dict[tuple[str, str], tuple[float, int]] = {}


def _default_writer(payload: dict[str, Any]) -> None:
    line = orjson.dumps(payload, default=str).decode("utf-8")
    level = logging.WARNING if payload.get("level") == "WARN" else logging.DEBUG
    has_handlers = _logger.handlers or logging.getLogger().handlers
    # Fall back to stderr rather than lose payloads the logger level filters out
    if has_handlers and _logger.isEnabledFor(level):
        _logger.log(level, line)
        return
    sys.stderr.write(line + "\n")


_writer: Writer = _default_writer


def _is_enabled() -> bool:
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


def _allow(component: str, message: str) -> bool:
    key = (component, message)
    now = time.monotonic()
    with _rate_lock:
        window_start, count = _rate_state.get(key, (now, 0))
        if now - window_start >= _RATE_WINDOW_SECONDS:
            window_start, count = now, 0
        if count >= _RATE_MAX_PER_WINDOW:
            _rate_state[key] = (window_start, count)
            return False
        _rate_state[key] = (window_start, count + 1)
        return True


def _emit(level: str, component: str, message: str, fields: dict[str, Any]) -> None:
    if not _is_enabled():
        return
    if not _allow(component, message):
        return
    payload: dict[str, Any] = {
        "timestamp": time.time(),
        "level": level,
        "component": component,
        "message": message,
    }
    payload.update(fields)
    try:
        _writer(payload)
    except Exception:
        # Diagnostics must never break the caller
        return


def warn(component: str, message: str, **fields: Any) -> None:
    """Emit a WARN diagnostic for a non-fatal problem."""
    _emit("WARN", component, message, fields)


def debug(component: str, message: str, **fields: Any) -> None:
    """Emit a DEBUG diagnostic for routine but noteworthy activity."""
    _emit("DEBUG", component, message, fields)


def set_writer_for_tests(writer: Writer) -> None:
    """Replace the payload writer (tests capture payloads into a list)."""
    global _writer
    _writer = writer


def _reset_for_tests() -> None:
    global _internal_logging_enabled, _writer
    _internal_logging_enabled = None
    _writer = _default_writer
    with _rate_lock:
        _rate_state.clear()


__all__ = ["warn", "debug", "set_writer_for_tests"]
