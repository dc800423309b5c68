"""
Async-first metrics collection for logtrunc.

Implements a small set of Prometheus-compatible counters and histograms for
the filter pipeline.

Design goals:
- Pure async/await, no blocking I/O
- Zero global state; each collector owns an isolated registry
- Safe no-op behavior when metrics are disabled by settings
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class PipelineMetrics:
    """Captured runtime metrics for quick assertions in tests."""

    events_processed: int = 0
    events_filtered: int = 0
    events_truncated: int = 0
    fields_truncated: int = 0
    plugin_errors: int = 0


class MetricsCollector:
    """Container-scoped async metrics collector.

    When disabled, all methods are safe no-ops while still tracking basic
    in-memory counters for tests.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = asyncio.Lock()
        self._state = PipelineMetrics()

        self._c_events: Any | None = None
        self._c_filtered: Any | None = None
        self._c_truncated_events: Any | None = None
        self._c_truncated_fields: Any | None = None
        self._c_plugin_errors: Any | None = None
        self._h_process_latency: Any | None = None
        self._h_plugin_exec: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            # Isolated registry avoids duplicate registration across instances
            self._registry = CollectorRegistry()
            self._c_events = Counter(
                "logtrunc_events_processed_total",
                "Total number of events processed by the filter pipeline",
                registry=self._registry,
            )
            self._c_filtered = Counter(
                "logtrunc_events_filtered_total",
                "Total number of events dropped by filters",
                registry=self._registry,
            )
            self._c_truncated_events = Counter(
                "logtrunc_events_truncated_total",
                "Total number of events with at least one truncated string",
                ["plugin"],
                registry=self._registry,
            )
            self._c_truncated_fields = Counter(
                "logtrunc_fields_truncated_total",
                "Total number of string values shortened",
                ["plugin"],
                registry=self._registry,
            )
            self._c_plugin_errors = Counter(
                "logtrunc_plugin_errors_total",
                "Total number of plugin execution errors",
                ["plugin"],
                registry=self._registry,
            )
            self._h_process_latency = Histogram(
                "logtrunc_event_process_seconds",
                "Latency for processing a single event",
                buckets=(0.00005, 0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1),
                registry=self._registry,
            )
            self._h_plugin_exec = Histogram(
                "logtrunc_plugin_exec_seconds",
                "Execution time of a single plugin call",
                ["plugin"],
                buckets=(0.00005, 0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    async def record_event_processed(
        self, *, duration_seconds: float | None = None
    ) -> None:
        async with self._lock:
            self._state.events_processed += 1
        if not self._enabled:
            return
        if self._c_events is not None:
            self._c_events.inc()
        if duration_seconds is not None and self._h_process_latency is not None:
            self._h_process_latency.observe(duration_seconds)

    async def record_events_filtered(self, count: int = 1) -> None:
        async with self._lock:
            self._state.events_filtered += count
        if self._enabled and self._c_filtered is not None:
            self._c_filtered.inc(count)

    async def record_truncation(
        self, *, fields: int, plugin_name: str | None = None
    ) -> None:
        """Record one matched event and the number of strings it shortened."""
        async with self._lock:
            self._state.events_truncated += 1
            self._state.fields_truncated += fields
        if not self._enabled:
            return
        label = plugin_name or "unknown"
        if self._c_truncated_events is not None:
            self._c_truncated_events.labels(plugin=label).inc()
        if self._c_truncated_fields is not None:
            self._c_truncated_fields.labels(plugin=label).inc(fields)

    async def record_plugin_error(
        self,
        *,
        plugin_name: str | None = None,
    ) -> None:
        async with self._lock:
            self._state.plugin_errors += 1
        if not self._enabled:
            return
        if self._c_plugin_errors is not None:
            label = plugin_name or "unknown"
            self._c_plugin_errors.labels(plugin=label).inc()

    async def record_plugin_exec(
        self, *, plugin_name: str, duration_seconds: float
    ) -> None:
        if self._enabled and self._h_plugin_exec is not None:
            self._h_plugin_exec.labels(plugin=plugin_name).observe(duration_seconds)

    async def snapshot(self) -> PipelineMetrics:
        async with self._lock:
            return PipelineMetrics(
                events_processed=self._state.events_processed,
                events_filtered=self._state.events_filtered,
                events_truncated=self._state.events_truncated,
                fields_truncated=self._state.fields_truncated,
                plugin_errors=self._state.plugin_errors,
            )


@asynccontextmanager
async def plugin_timer(
    metrics: MetricsCollector | None, plugin_name: str
) -> AsyncIterator[None]:
    """Time a plugin call; count an error when the body raises."""
    if metrics is None:
        yield
        return
    start = time.perf_counter()
    try:
        yield
    except Exception:
        await metrics.record_plugin_error(plugin_name=plugin_name)
        raise
    finally:
        await metrics.record_plugin_exec(
            plugin_name=plugin_name,
            duration_seconds=time.perf_counter() - start,
        )
