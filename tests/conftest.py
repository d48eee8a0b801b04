"""
Pytest configuration and fixtures for mail-queue.

Provides cross-platform event loop configuration and shared fakes.
"""

import asyncio
import sys

import pytest

from mail_queue.models import InboundEmail
from relay.config import get_settings

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


class FakeClock:
    """Controllable clock: ``sleep`` advances time instantly and records the wait."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_email():
    """Factory for numbered mail records."""

    def _make(i: int = 0, **overrides) -> InboundEmail:
        data = {
            "from": f"sender{i}@example.com",
            "to": "inbox@example.org",
            "subject": f"message {i}",
            "text": f"body {i}",
            "html": f"<p>body {i}</p>",
        }
        data.update(overrides)
        return InboundEmail.model_validate(data)

    return _make


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached process-wide; reset around each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
