"""
Error taxonomy for logtrunc.

Configuration problems are the only failures the filter raises; per-event
processing never fails for absent fields, non-string values or empty
containers.
"""

from __future__ import annotations

from typing import Any


class LogtruncError(Exception):
    """Base class for all logtrunc errors."""


class ConfigError(LogtruncError, ValueError):
    """Raised at construction time when plugin configuration is invalid.

    Carries the offending plugin name and a flattened list of problems so
    hosts can surface them without parsing the message.
    """

    def __init__(
        self,
        message: str,
        *,
        plugin_name: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.plugin_name = plugin_name
        self.errors: list[dict[str, Any]] = list(errors or [])

    def __str__(self) -> str:
        base = super().__str__()
        if self.plugin_name:
            return f"{self.plugin_name}: {base}"
        return base


__all__ = ["LogtruncError", "ConfigError"]
