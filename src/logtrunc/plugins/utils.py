"""
Plugin utilities for config parsing and name resolution.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.errors import ConfigError

M = TypeVar("M", bound=BaseModel)


def parse_plugin_config(
    model: type[M],
    config: M | dict[str, Any] | None = None,
    **kwargs: Any,
) -> M:
    """Build a plugin config model from the shapes hosts pass around.

    Accepts a model instance, a plain dict, a ``{"config": {...}}`` wrapper
    (as produced by the loader) or keyword arguments. Validation failures are
    raised as ``ConfigError`` with the pydantic error list attached.
    """
    if isinstance(config, model):
        return config

    if isinstance(config, dict):
        raw: Any = config.get("config", config)
    elif config is None:
        raw = kwargs.get("config", kwargs)
    else:
        raise ConfigError(
            f"unsupported config type {type(config).__name__}",
            plugin_name=model.__name__,
        )

    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw or {})
    except ValidationError as exc:
        errors = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ())),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        raise ConfigError(
            f"invalid configuration ({summary})",
            plugin_name=model.__name__,
            errors=errors,
        ) from exc


def normalize_plugin_name(name: str) -> str:
    """Normalize a plugin name to canonical form (underscores, lowercase)."""
    return name.replace("-", "_").lower()


__all__ = ["parse_plugin_config", "normalize_plugin_name"]
