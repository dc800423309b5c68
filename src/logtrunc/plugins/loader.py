"""
Filter resolution and construction for ``FilterPipeline``.

A filter name resolves against the built-in registry first (aliases
included), then against the ``logtrunc.filters`` entry point group. Names are
compared after normalization, so ``truncate-bytes`` and ``Truncate_Bytes``
refer to the same filter.
"""

from __future__ import annotations

import importlib.metadata
import inspect
from enum import Enum
from typing import Any, Iterable

from ..core import diagnostics
from ..core.errors import ConfigError, LogtruncError
from ..metrics.metrics import MetricsCollector
from .utils import normalize_plugin_name

FILTERS_GROUP = "logtrunc.filters"

# canonical name -> class
BUILTIN_FILTERS: dict[str, type] = {}
# alias -> canonical name
BUILTIN_ALIASES: dict[str, str] = {}


class PluginNotFoundError(LogtruncError):
    """No built-in or entry point filter has the requested name."""


class PluginLoadError(LogtruncError):
    """A filter was found but could not be imported or constructed."""


class ValidationMode(Enum):
    DISABLED = "disabled"
    WARN = "warn"
    STRICT = "strict"


def register_builtin(
    name: str, cls: type, *, aliases: Iterable[str] | None = None
) -> None:
    canonical = normalize_plugin_name(name)
    BUILTIN_FILTERS[canonical] = cls
    for alias in aliases or ():
        BUILTIN_ALIASES[normalize_plugin_name(alias)] = canonical


def resolve_filter_class(name: str) -> type:
    """Return the filter class registered under ``name``."""
    canonical = normalize_plugin_name(name)
    target = BUILTIN_ALIASES.get(canonical, canonical)
    if target in BUILTIN_FILTERS:
        return BUILTIN_FILTERS[target]

    try:
        for ep in importlib.metadata.entry_points().select(group=FILTERS_GROUP):
            if normalize_plugin_name(ep.name) == canonical:
                loaded: type = ep.load()
                return loaded
    except Exception as exc:
        raise PluginLoadError(f"Failed to load filter '{name}': {exc}") from exc

    raise PluginNotFoundError(f"Filter '{name}' not found in '{FILTERS_GROUP}'")


def load_filter(
    name: str,
    config: dict[str, Any] | None = None,
    *,
    metrics: MetricsCollector | None = None,
    validation_mode: ValidationMode = ValidationMode.DISABLED,
) -> Any:
    """Construct the filter ``name`` with its option dict.

    The collector is handed over only to filters whose constructor takes a
    ``metrics`` argument. ``ConfigError`` from the constructor propagates
    unchanged; any other construction failure becomes ``PluginLoadError``.
    """
    cls = resolve_filter_class(name)
    kwargs: dict[str, Any] = {"config": dict(config or {})}
    if metrics is not None and _accepts_metrics(cls):
        kwargs["metrics"] = metrics

    try:
        instance = cls(**kwargs)
    except ConfigError:
        raise
    except Exception as exc:
        diagnostics.warn(
            "plugins",
            "plugin instantiation failed",
            plugin=name,
            error=str(exc),
        )
        raise PluginLoadError(f"Filter '{name}' failed to load: {exc}") from exc

    if validation_mode is not ValidationMode.DISABLED:
        _check_filter(instance, name, validation_mode)
    return instance


def _accepts_metrics(cls: type) -> bool:
    try:
        params = inspect.signature(cls).parameters
    except (TypeError, ValueError):
        return False
    return "metrics" in params


def filter_problems(instance: Any) -> list[str]:
    """List the ways ``instance`` falls short of the ``BaseFilter`` shape."""
    problems: list[str] = []
    if not isinstance(getattr(instance, "name", None), str):
        problems.append("'name' must be a string")
    for method in ("start", "stop", "filter"):
        if not inspect.iscoroutinefunction(getattr(instance, method, None)):
            problems.append(f"{method} must be an async method")
    return problems


def _check_filter(instance: Any, name: str, mode: ValidationMode) -> None:
    problems = filter_problems(instance)
    if not problems:
        return
    if mode is ValidationMode.STRICT:
        raise PluginLoadError(
            f"Filter '{name}' failed validation: {'; '.join(problems)}"
        )
    diagnostics.warn(
        "plugins",
        "plugin validation failed",
        plugin=name,
        errors=problems,
    )


__all__ = [
    "FILTERS_GROUP",
    "PluginLoadError",
    "PluginNotFoundError",
    "ValidationMode",
    "filter_problems",
    "load_filter",
    "register_builtin",
    "resolve_filter_class",
]
