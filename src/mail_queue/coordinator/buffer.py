from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Sequence

from loguru import logger

from ..metrics.registry import metrics_registry
from .delivery import deliver
from .policy import RetryPolicy
from .types import DeliveryOutcome, DeliveryState, Sender, SleepFn, T

DEFAULT_QUEUE_NAME = "global-email-queue"


@dataclass(frozen=True)
class QueueHealth:
    name: str
    buffer_size: int
    draining: bool
    drain_passes: int
    delivered: int
    failed: int


class BatchBuffer(Generic[T]):
    """Unbounded in-memory buffer that flushes to ``send`` in bounded batches.

    ``enqueue`` appends and, once the buffer holds ``flush_threshold`` items,
    drains before returning. ``drain`` removes up to ``max_batch_size`` items
    per pass, delivers them concurrently, and keeps going until the buffer is
    empty or another drain takes over. Only one pass runs at a time.

    Example:
        async with BatchBuffer[InboundEmail](sender, flush_threshold=50) as q:
            await q.enqueue(email)
        # remaining items drained on exit
    """

    def __init__(
        self,
        send: Sender[T],
        *,
        name: str = DEFAULT_QUEUE_NAME,
        flush_threshold: int = 50,
        max_batch_size: int = 100,
        retry_policy: Optional[RetryPolicy] = None,
        flush_interval: float | None = None,
        on_outcome: Optional[Callable[[DeliveryOutcome[T]], Awaitable[None]]] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        if flush_threshold <= 0:
            raise ValueError("flush_threshold must be > 0")
        if max_batch_size <= 0:
            raise ValueError("max_batch_size must be > 0")
        if flush_interval is not None and flush_interval <= 0:
            raise ValueError("flush_interval must be > 0")

        self._send = send
        self._name = name
        self._flush_threshold = flush_threshold
        self._max_batch_size = max_batch_size
        self._policy = retry_policy or RetryPolicy()
        self._flush_interval = flush_interval
        self._on_outcome = on_outcome
        self._sleep = sleep

        self._items: list[T] = []
        self._draining = False
        # Serializes appends against batch removal and the draining flag
        self._lock = asyncio.Lock()
        # Set whenever no drain pass is running
        self._idle = asyncio.Event()
        self._idle.set()
        self._cancel_reason: str | None = None

        self._drain_passes = 0
        self._delivered = 0
        self._failed = 0

        self._flusher: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    # --------------- properties

    @property
    def name(self) -> str:
        return self._name

    @property
    def size(self) -> int:
        return len(self._items)

    @property
    def draining(self) -> bool:
        return self._draining

    @property
    def flush_threshold(self) -> int:
        return self._flush_threshold

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._policy

    # --------------- public API

    async def enqueue(self, item: T) -> None:
        """Append ``item``; drain synchronously once the threshold is reached."""
        async with self._lock:
            self._items.append(item)
            size = len(self._items)

        metrics_registry.queue_enqueued_total.labels(queue=self._name).inc()
        metrics_registry.queue_buffer_size.labels(queue=self._name).set(size)

        if size >= self._flush_threshold:
            logger.debug(f"[{self._name}] threshold reached ({size}/{self._flush_threshold})")
            await self.drain()

    async def drain(self) -> list[DeliveryOutcome[T]]:
        """Drain the buffer batch by batch.

        Returns the outcomes of every item this call delivered; an empty list
        when another drain is already running or there is nothing to do.
        """
        outcomes: list[DeliveryOutcome[T]] = []
        while True:
            batch = await self._claim_batch()
            if batch is None:
                return outcomes
            try:
                outcomes.extend(await self._dispatch(batch))
            finally:
                self._draining = False
                self._idle.set()

    def health(self) -> QueueHealth:
        return QueueHealth(
            name=self._name,
            buffer_size=len(self._items),
            draining=self._draining,
            drain_passes=self._drain_passes,
            delivered=self._delivered,
            failed=self._failed,
        )

    # --------------- lifecycle

    async def start(self) -> None:
        """Start the interval flusher if ``flush_interval`` is set."""
        if self._flush_interval is None or self._flusher is not None:
            return
        self._stop_event.clear()
        self._flusher = asyncio.create_task(self._flush_loop(), name=f"{self._name}-flusher")
        logger.info(f"[{self._name}] interval flush every {self._flush_interval}s")

    async def stop(self, drain: bool = True, timeout: float | None = None) -> None:
        """Stop the interval flusher and, optionally, drain what is left.

        If the drain does not finish within ``timeout`` seconds, the batch in
        flight is cancelled and each of its items is reported as permanently
        failed. Items not yet claimed stay in the buffer. The timeout is
        logged, not raised.
        """
        if self._flusher is not None:
            self._stop_event.set()
            await self._flusher
            self._flusher = None

        if drain:
            await self._drain_within(timeout)
        logger.info(f"[{self._name}] stopped (buffer={len(self._items)})")

    async def __aenter__(self) -> "BatchBuffer[T]":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop(drain=True)

    # --------------- internals

    async def _claim_batch(self) -> list[T] | None:
        async with self._lock:
            if self._draining or not self._items:
                return None
            self._draining = True
            self._idle.clear()
            batch = self._items[: self._max_batch_size]
            del self._items[: self._max_batch_size]
            self._drain_passes += 1
            remaining = len(self._items)

        metrics_registry.queue_drain_passes_total.labels(queue=self._name).inc()
        metrics_registry.queue_batch_size.labels(queue=self._name).observe(len(batch))
        metrics_registry.queue_buffer_size.labels(queue=self._name).set(remaining)
        logger.debug(
            f"[{self._name}] drain pass {self._drain_passes}: "
            f"{len(batch)} item(s), {remaining} left"
        )
        return batch

    async def _dispatch(self, batch: Sequence[T]) -> list[DeliveryOutcome[T]]:
        tasks = [
            asyncio.ensure_future(deliver(item, self._send, self._policy, sleep=self._sleep))
            for item in batch
        ]
        try:
            await asyncio.gather(*tasks, return_exceptions=True)
        except asyncio.CancelledError:
            # items already left the buffer; each one still gets an outcome
            reason = self._cancel_reason or "delivery cancelled"
            await self._record(
                [self._settled(item, task, reason) for item, task in zip(batch, tasks)]
            )
            raise

        outcomes = [
            self._settled(item, task, "delivery cancelled") for item, task in zip(batch, tasks)
        ]
        await self._record(outcomes)

        ok = sum(1 for o in outcomes if o.ok)
        if ok < len(outcomes):
            logger.warning(f"[{self._name}] batch done: {ok} delivered, {len(outcomes) - ok} failed")
        return outcomes

    @staticmethod
    def _settled(item: T, task: asyncio.Future, reason: str) -> DeliveryOutcome[T]:
        if task.done() and not task.cancelled():
            exc = task.exception()
            if exc is None:
                return task.result()
            reason = f"{type(exc).__name__}: {exc}"
        return DeliveryOutcome(
            item=item,
            state=DeliveryState.PERMANENTLY_FAILED,
            attempts=0,
            error=reason,
        )

    async def _record(self, outcomes: Sequence[DeliveryOutcome[T]]) -> None:
        ok = sum(1 for o in outcomes if o.ok)
        self._delivered += ok
        self._failed += len(outcomes) - ok
        if not self._on_outcome:
            return
        for outcome in outcomes:
            try:
                await self._on_outcome(outcome)
            except Exception as exc:
                logger.debug(f"Outcome callback error (ignored): {type(exc).__name__}: {exc}")

    async def _flush_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._flush_interval)
            except asyncio.TimeoutError:
                if self._items:
                    await self.drain()

    async def _drain_until_empty(self) -> None:
        while self._items or self._draining:
            if self._draining:
                # another drain owns the buffer; it re-checks before finishing
                await self._idle.wait()
            else:
                await self.drain()

    async def _drain_within(self, timeout: float | None) -> None:
        task = asyncio.create_task(self._drain_until_empty(), name=f"{self._name}-shutdown")
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            task.result()
            return

        failed_before = self._failed
        self._cancel_reason = f"shutdown timeout after {timeout}s"
        task.cancel()
        await asyncio.wait({task})
        self._cancel_reason = None
        logger.error(
            f"[{self._name}] shutdown drain timed out after {timeout}s: "
            f"{self._failed - failed_before} in-flight item(s) failed, "
            f"{len(self._items)} left in buffer"
        )
