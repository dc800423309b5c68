"""Core building blocks: truncation algorithm, errors, settings, diagnostics."""

from .errors import ConfigError, LogtruncError
from .truncation import byte_length, cut_bytes, truncate_fields, truncate_value

__all__ = [
    "ConfigError",
    "LogtruncError",
    "byte_length",
    "cut_bytes",
    "truncate_fields",
    "truncate_value",
]
