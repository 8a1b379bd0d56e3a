"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeGauges:
    """Resource gauges returning fixed readings."""

    def __init__(self, cpu=10.0, memory=20.0, storage=30.0, external_quota=0.0):
        from autonomy.models import ResourceSnapshot

        self.reading = ResourceSnapshot(
            cpu=cpu, memory=memory, storage=storage, external_quota=external_quota
        )

    def snapshot(self):
        return self.reading


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 3, 3, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from autonomy.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest_asyncio.fixture
async def message_bus(storage):
    """Create MessageBus with storage."""
    from autonomy.bus import MessageBus

    bus = MessageBus(storage, request_timeout=1.0)
    yield bus
    await bus.close()


@pytest.fixture
def tracker(storage, message_bus):
    """Create Tracker with storage and message bus."""
    from autonomy.tracker import Tracker

    return Tracker(message_bus=message_bus, storage=storage)


@pytest.fixture
def gauges():
    return FakeGauges()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_generator():
    """Create mock content generator."""
    generator = Mock()
    generator.generate = AsyncMock(return_value={})
    generator.quota_usage = Mock(return_value=0.0)
    return generator


@pytest.fixture
def make_agent(storage):
    """Factory for started agent runtimes."""
    from autonomy.agents import AgentRuntime
    from autonomy.models import Capability

    def factory(agent_id="worker", capabilities=None, **kwargs):
        return AgentRuntime(
            agent_id=agent_id,
            role=kwargs.pop("role", "worker"),
            capabilities=frozenset(capabilities or {Capability.ANALYTICS}),
            storage=storage,
            **kwargs,
        )

    return factory
