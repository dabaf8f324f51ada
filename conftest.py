"""
Root pytest configuration.
"""

from __future__ import annotations

from collections.abc import Generator

import pytest

# Register lokisink testing fixtures (fake_loki, loki_client) for all tests
pytest_plugins = ("lokisink.testing.fixtures",)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests requiring a running Loki (LOKI_ADDR)",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics_cache() -> Generator[None, None, None]:
    """Reset the diagnostics module state before each test.

    The diagnostics module caches the `internal_logging_enabled` setting at
    first access. Resetting it keeps tests from inheriting each other's
    environment.
    """
    import lokisink.core.diagnostics as diag

    diag._reset_for_tests()
    yield
    diag._reset_for_tests()
