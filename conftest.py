"""
Root pytest configuration.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests wiring several components together",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics_cache() -> Generator[None, None, None]:
    """Reset diagnostics state before and after each test.

    The diagnostics module caches the `internal_logging_enabled` setting
    at first access and keeps per-key rate limit counters. Resetting keeps
    tests from inheriting state from one another.
    """
    import logtrunc.core.diagnostics as diag

    diag._reset_for_tests()
    yield
    diag._reset_for_tests()


@pytest.fixture
def captured_diagnostics(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[list[dict[str, Any]], None, None]:
    """Enable internal diagnostics and collect emitted payloads."""
    import logtrunc.core.diagnostics as diag

    monkeypatch.setenv("LOGTRUNC_CORE__INTERNAL_LOGGING_ENABLED", "true")
    captured: list[dict[str, Any]] = []
    diag.set_writer_for_tests(captured.append)
    yield captured
