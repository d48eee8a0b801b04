"""
Explicit registry of named queue instances.

Callers that need "the" queue look it up by its well-known name on a registry
they were handed, instead of reaching for a module-level global.
"""

from __future__ import annotations

from typing import Generic, Iterator

from loguru import logger

from ..errors import QueueExistsError, QueueNotFoundError
from .buffer import BatchBuffer
from .types import T


class QueueRegistry(Generic[T]):
    """Name -> BatchBuffer mapping.

    Example:
        registry = QueueRegistry[InboundEmail]()
        registry.register(BatchBuffer(sender, name="global-email-queue"))
        queue = registry.get("global-email-queue")
    """

    def __init__(self) -> None:
        self._queues: dict[str, BatchBuffer[T]] = {}

    def register(self, queue: BatchBuffer[T]) -> BatchBuffer[T]:
        """Add ``queue`` under its own name.

        Raises:
            QueueExistsError: if the name is already taken by another instance
        """
        existing = self._queues.get(queue.name)
        if existing is not None and existing is not queue:
            raise QueueExistsError(f"queue {queue.name!r} already registered")
        self._queues[queue.name] = queue
        logger.debug(f"Queue registered: {queue.name} (total: {len(self._queues)})")
        return queue

    def get(self, name: str) -> BatchBuffer[T]:
        try:
            return self._queues[name]
        except KeyError:
            raise QueueNotFoundError(name) from None

    def unregister(self, name: str) -> BatchBuffer[T] | None:
        return self._queues.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._queues

    def __iter__(self) -> Iterator[BatchBuffer[T]]:
        return iter(list(self._queues.values()))

    def __len__(self) -> int:
        return len(self._queues)

    async def stop_all(self, drain: bool = True, timeout: float | None = None) -> None:
        """Stop every queue; one failing queue does not keep the others running.

        Raises:
            The first error raised by any ``stop()``, after all queues were stopped
        """
        first_error: Exception | None = None
        for queue in self:
            try:
                await queue.stop(drain=drain, timeout=timeout)
            except Exception as exc:
                logger.error(f"Failed to stop queue {queue.name}: {type(exc).__name__}: {exc}")
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
