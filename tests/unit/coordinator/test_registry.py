"""
Unit tests for QueueRegistry.
"""

import asyncio

import pytest

from mail_queue.coordinator import DEFAULT_QUEUE_NAME, BatchBuffer, QueueRegistry
from mail_queue.errors import QueueExistsError, QueueNotFoundError


async def ok(item):
    return True


@pytest.mark.asyncio
async def test_register_and_lookup_by_well_known_name():
    registry = QueueRegistry[int]()
    q = registry.register(BatchBuffer[int](ok))

    assert q.name == DEFAULT_QUEUE_NAME == "global-email-queue"
    assert registry.get(DEFAULT_QUEUE_NAME) is q
    assert DEFAULT_QUEUE_NAME in registry
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_register_same_instance_twice_is_idempotent():
    registry = QueueRegistry[int]()
    q = BatchBuffer[int](ok, name="a")
    registry.register(q)
    registry.register(q)
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_duplicate_name_rejected():
    registry = QueueRegistry[int]()
    registry.register(BatchBuffer[int](ok, name="a"))
    with pytest.raises(QueueExistsError):
        registry.register(BatchBuffer[int](ok, name="a"))


@pytest.mark.asyncio
async def test_missing_name_raises():
    registry = QueueRegistry[int]()
    with pytest.raises(QueueNotFoundError):
        registry.get("nope")
    # also a KeyError for dict-style callers
    with pytest.raises(KeyError):
        registry.get("nope")


@pytest.mark.asyncio
async def test_stop_all_drains_every_queue():
    delivered = []

    async def send(item):
        delivered.append(item)
        return True

    registry = QueueRegistry[int]()
    a = registry.register(BatchBuffer[int](send, name="a", flush_threshold=10))
    b = registry.register(BatchBuffer[int](send, name="b", flush_threshold=10))
    await a.enqueue(1)
    await b.enqueue(2)

    await registry.stop_all(drain=True)

    assert sorted(delivered) == [1, 2]
    assert registry.unregister("a") is a
    assert "a" not in registry


@pytest.mark.asyncio
async def test_stop_all_continues_past_hanging_queue():
    """A queue stuck past the shutdown timeout does not block the next one."""
    gate = asyncio.Event()
    delivered = []

    async def hang(item):
        await gate.wait()
        return True

    async def send(item):
        delivered.append(item)
        return True

    registry = QueueRegistry[int]()
    a = registry.register(BatchBuffer[int](hang, name="a", flush_threshold=10))
    b = registry.register(BatchBuffer[int](send, name="b", flush_threshold=10))
    await a.enqueue(1)
    await b.enqueue(2)

    await registry.stop_all(drain=True, timeout=0.05)

    assert a.health().failed == 1
    assert delivered == [2]
    assert b.size == 0


@pytest.mark.asyncio
async def test_stop_all_stops_every_queue_before_raising(monkeypatch):
    delivered = []

    async def send(item):
        delivered.append(item)
        return True

    registry = QueueRegistry[int]()
    a = registry.register(BatchBuffer[int](send, name="a", flush_threshold=10))
    b = registry.register(BatchBuffer[int](send, name="b", flush_threshold=10))

    async def broken_stop(drain=True, timeout=None):
        raise RuntimeError("stop failed")

    monkeypatch.setattr(a, "stop", broken_stop)
    await b.enqueue(2)

    with pytest.raises(RuntimeError, match="stop failed"):
        await registry.stop_all(drain=True)

    assert delivered == [2]
