"""
logtrunc filter plugins.

Importing this package registers the built-in filters with the loader.
"""

from .filters import BaseFilter, TruncateConfig, TruncateFilter, filter_in_order
from .loader import (
    PluginLoadError,
    PluginNotFoundError,
    ValidationMode,
    load_filter,
    register_builtin,
)

__all__ = [
    "BaseFilter",
    "TruncateConfig",
    "TruncateFilter",
    "filter_in_order",
    "PluginLoadError",
    "PluginNotFoundError",
    "ValidationMode",
    "load_filter",
    "register_builtin",
]
