"""
Pytest fixtures for testing code that pushes to Loki.

Register with ``pytest_plugins = ("lokisink.testing.fixtures",)``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from .fake_loki import FakeLoki


@pytest.fixture
def fake_loki() -> FakeLoki:
    """A fake ingestion endpoint answering 204 by default."""
    return FakeLoki()


@pytest_asyncio.fixture
async def loki_client(fake_loki: FakeLoki) -> AsyncGenerator[httpx.AsyncClient, None]:
    """An `httpx.AsyncClient` routed to `fake_loki`."""
    async with fake_loki.client() as client:
        yield client
