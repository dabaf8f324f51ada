"""
Testing utilities for code that ships logs through lokisink.

Pytest fixtures live in `lokisink.testing.fixtures` and are registered with
``pytest_plugins = ("lokisink.testing.fixtures",)``.

Example:
    from lokisink.testing import FakeLoki

    async def test_push():
        fake = FakeLoki()
        async with fake.client() as client:
            ...
"""

from .fake_loki import FakeLoki, PushRecord

__all__ = ["FakeLoki", "PushRecord"]
