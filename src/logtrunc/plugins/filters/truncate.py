"""Byte-length truncation filter.

Shortens string values whose UTF-8 encoding exceeds ``length_bytes`` so the
result is the longest valid prefix that fits. Either every top-level field
is scanned, or only the names listed in ``fields``; in both cases the filter
recurses through nested dicts and lists.

When at least one value was shortened the event is marked matched exactly
once. By default marking applies the ``add_tag`` / ``remove_tag`` options;
hosts can pass their own ``mark_matched`` callback to :meth:`process`.

The filter never drops events.
"""

from __future__ import annotations

import re
from typing import Any, Callable

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    field_validator,
)

from ...core import diagnostics
from ...core.truncation import format_path, truncate_fields
from ...metrics.metrics import MetricsCollector
from ..utils import parse_plugin_config

MarkMatched = Callable[[dict], None]

_SPRINTF_REF = re.compile(r"%\{([^}]+)\}")


class TruncateConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    length_bytes: StrictInt = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("length_bytes", "max_length_bytes"),
        description="Maximum UTF-8 byte length for in-scope string values",
    )
    fields: list[str] = Field(
        default_factory=list,
        description="Top-level fields to truncate (empty = whole event)",
    )
    add_tag: list[str] = Field(
        default_factory=list,
        description="Tags added to the event when a value was truncated",
    )
    remove_tag: list[str] = Field(
        default_factory=list,
        description="Tags removed from the event when a value was truncated",
    )

    @field_validator("fields", "add_tag", "remove_tag", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("fields")
    @classmethod
    def _ensure_names_non_empty(cls, value: list[str]) -> list[str]:
        # Names are matched verbatim; " msg" and "msg" are different fields
        if any(not v.strip() for v in value):
            raise ValueError("field names must not be blank")
        return list(dict.fromkeys(value))


class TruncateFilter:
    """Bound the byte length of string values in an event."""

    name = "truncate"

    def __init__(
        self,
        *,
        config: TruncateConfig | dict | None = None,
        metrics: MetricsCollector | None = None,
        **kwargs: Any,
    ) -> None:
        cfg = parse_plugin_config(TruncateConfig, config, **kwargs)
        self._max_bytes = int(cfg.length_bytes)
        self._fields: tuple[str, ...] = tuple(cfg.fields)
        self._add_tag: tuple[str, ...] = tuple(cfg.add_tag)
        self._remove_tag: tuple[str, ...] = tuple(cfg.remove_tag)
        self._metrics = metrics

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @property
    def fields(self) -> tuple[str, ...]:
        return self._fields

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    def process(self, event: dict, mark_matched: MarkMatched | None = None) -> bool:
        """Truncate ``event`` in place and mark it matched at most once.

        Returns True when at least one string was shortened.
        """
        return self._apply(event, mark_matched) > 0

    async def filter(self, event: dict) -> dict:
        count = self._apply(event, None)
        if count and self._metrics is not None:
            await self._metrics.record_truncation(fields=count, plugin_name=self.name)
        return event

    async def health_check(self) -> bool:
        return self._max_bytes >= 0

    def _apply(self, event: dict, mark_matched: MarkMatched | None) -> int:
        truncated = 0

        def _on_truncate(path: tuple[Any, ...], original: int, result: int) -> None:
            nonlocal truncated
            truncated += 1
            diagnostics.debug(
                "filter",
                "string field truncated",
                filter=self.name,
                path=format_path(path),
                original_bytes=original,
                truncated_to=result,
            )

        matched = truncate_fields(
            event,
            self._max_bytes,
            self._fields or None,
            on_truncate=_on_truncate,
        )
        if matched:
            (mark_matched or self._decorate)(event)
        return truncated

    def _decorate(self, event: dict) -> None:
        if not self._add_tag and not self._remove_tag:
            return
        tags = event.get("tags")
        if tags is None:
            tags = []
        elif isinstance(tags, str):
            tags = [tags]
        elif not isinstance(tags, list):
            diagnostics.warn(
                "filter",
                "tags field is not a list; skipping tag decoration",
                filter=self.name,
                tags_type=type(tags).__name__,
            )
            return

        for template in self._add_tag:
            tag = _sprintf(template, event)
            if tag not in tags:
                tags.append(tag)
        if self._remove_tag:
            removed = {_sprintf(t, event) for t in self._remove_tag}
            tags = [t for t in tags if t not in removed]
        event["tags"] = tags


def _sprintf(template: str, event: dict) -> str:
    """Expand ``%{field}`` / ``%{[a][b]}`` references against ``event``."""
    if "%{" not in template:
        return template

    def _replace(match: re.Match[str]) -> str:
        ref = match.group(1)
        parts = re.findall(r"\[([^\]]+)\]", ref) if ref.startswith("[") else [ref]
        value: Any = event
        for part in parts:
            if not isinstance(value, dict) or part not in value:
                return match.group(0)
            value = value[part]
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return match.group(0)
        return str(value)

    return _SPRINTF_REF.sub(_replace, template)


PLUGIN_METADATA = {
    "name": "truncate",
    "version": "1.0.0",
    "plugin_type": "filter",
    "entry_point": "logtrunc.plugins.filters.truncate:TruncateFilter",
    "description": "Truncates string values to a maximum UTF-8 byte length.",
    "author": "logtrunc",
    "compatibility": {"min_logtrunc_version": "0.1.0"},
    "config_schema": {
        "type": "object",
        "required": ["length_bytes"],
        "properties": {
            "length_bytes": {"type": "integer", "minimum": 0},
            "fields": {"type": "array", "items": {"type": "string"}},
            "add_tag": {"type": "array", "items": {"type": "string"}},
            "remove_tag": {"type": "array", "items": {"type": "string"}},
        },
    },
    "default_config": {
        "fields": [],
        "add_tag": [],
        "remove_tag": [],
    },
    "api_version": "1.0",
}
