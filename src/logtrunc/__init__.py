"""
logtrunc: byte-bounded string truncation for structured log events.

Quick use::

    from logtrunc import TruncateFilter

    f = TruncateFilter(length_bytes=5)
    event = {"message": "hello world"}
    f.process(event)  # True; event["message"] == "hello"
"""

from __future__ import annotations

from ._version import __version__
from .core.errors import ConfigError, LogtruncError
from .core.settings import Settings
from .core.truncation import byte_length, cut_bytes, truncate_fields, truncate_value
from .metrics.metrics import MetricsCollector
from .pipeline import FilterPipeline
from .plugins.filters import TruncateConfig, TruncateFilter

VERSION = __version__

__all__ = [
    "ConfigError",
    "LogtruncError",
    "Settings",
    "MetricsCollector",
    "FilterPipeline",
    "TruncateConfig",
    "TruncateFilter",
    "byte_length",
    "cut_bytes",
    "truncate_fields",
    "truncate_value",
    "__version__",
    "VERSION",
]
