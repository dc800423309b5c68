from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from ...core import diagnostics
from ...metrics.metrics import MetricsCollector, plugin_timer
from ..loader import register_builtin
from .truncate import TruncateConfig, TruncateFilter


@runtime_checkable
class BaseFilter(Protocol):
    """A pipeline stage that may rewrite an event or drop it.

    Filters edit the event they are given in place, nested containers
    included, and return it; the caller's event is the working copy.
    """

    name: str

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def filter(self, event: dict) -> dict | None:
        """Return the (possibly rewritten) event, or None to drop it."""

    async def health_check(self) -> bool:
        return True


async def filter_in_order(
    event: dict,
    filters: Iterable[BaseFilter],
    *,
    metrics: MetricsCollector | None = None,
) -> dict | None:
    """Run ``event`` through ``filters``; None when one of them drops it.

    The event is handed to each filter as is, so truncation lands in the
    caller's dict. A filter that raises is skipped and the next filter gets
    the event as that filter left it.
    """
    current = event
    for f in filters:
        name = getattr(f, "name", type(f).__name__)
        try:
            async with plugin_timer(metrics, name):
                result = await f.filter(current)
        except Exception as exc:
            diagnostics.warn(
                "filter",
                "filter exception",
                filter=name,
                reason=str(exc),
            )
            continue

        if result is None:
            if metrics is not None:
                await metrics.record_events_filtered(1)
            return None
        current = result
    return current


register_builtin("truncate", TruncateFilter, aliases=["truncate-bytes"])

__all__ = [
    "BaseFilter",
    "filter_in_order",
    "TruncateConfig",
    "TruncateFilter",
]
