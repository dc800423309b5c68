"""
Filter pipeline wiring.

``FilterPipeline`` turns :class:`~logtrunc.core.settings.Settings` into an
ordered list of loaded filter plugins, owns their lifecycle, and runs events
through them while recording metrics.
"""

from __future__ import annotations

import time
from typing import Any, Sequence

from .core import diagnostics
from .core.settings import Settings
from .metrics.metrics import MetricsCollector
from .plugins.filters import BaseFilter, filter_in_order
from .plugins.loader import ValidationMode, load_filter
from .plugins.utils import normalize_plugin_name


class FilterPipeline:
    """Ordered filters plus the metrics collector they report to."""

    def __init__(
        self,
        filters: Sequence[BaseFilter],
        *,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._filters: list[BaseFilter] = list(filters)
        self._metrics = metrics
        self._started = False

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> FilterPipeline:
        """Load every filter named in ``settings.core.filters``.

        Raises ``ConfigError`` when a filter's configuration is invalid and
        ``PluginNotFoundError`` for unknown names.
        """
        settings = settings or Settings()
        metrics = MetricsCollector(enabled=settings.core.enable_metrics)
        mode = ValidationMode(settings.core.plugin_validation_mode)
        configs = {
            normalize_plugin_name(k): v for k, v in settings.filter_config.items()
        }

        filters: list[BaseFilter] = [
            load_filter(
                name,
                configs.get(normalize_plugin_name(name)),
                metrics=metrics,
                validation_mode=mode,
            )
            for name in settings.core.filters
        ]
        return cls(filters, metrics=metrics)

    @property
    def filters(self) -> list[BaseFilter]:
        return list(self._filters)

    @property
    def metrics(self) -> MetricsCollector | None:
        return self._metrics

    async def start(self) -> None:
        if self._started:
            return
        for plugin in self._filters:
            await plugin.start()
        self._started = True

    async def stop(self) -> None:
        """Stop filters in reverse order; failures are reported, not raised."""
        if not self._started:
            return
        for plugin in reversed(self._filters):
            try:
                await plugin.stop()
            except Exception as exc:
                diagnostics.warn(
                    "filter",
                    "plugin stop failed",
                    plugin=getattr(plugin, "name", type(plugin).__name__),
                    error=str(exc),
                )
        self._started = False

    async def process(self, event: dict) -> dict | None:
        """Run ``event`` through every filter; None means it was dropped.

        Filters edit ``event`` in place and the returned dict is the same
        object unless a filter replaced it.
        """
        start = time.perf_counter()
        result = await filter_in_order(event, self._filters, metrics=self._metrics)
        if self._metrics is not None:
            await self._metrics.record_event_processed(
                duration_seconds=time.perf_counter() - start
            )
        return result

    async def __aenter__(self) -> FilterPipeline:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()


__all__ = ["FilterPipeline"]
