"""
Per-item delivery with exponential backoff.

One call chain per item:

    Attempting(0) -> Attempting(1) -> ... -> Attempting(max_retries)
         |               |                         |
         +-> Succeeded   +-> Succeeded             +-> Succeeded | PermanentlyFailed

A raised exception and a ``False`` result are the same kind of failure; both
consume one retry. Failures are returned as a tagged ``DeliveryOutcome`` and
never raised, so one item cannot disturb its batch-mates.
"""

from __future__ import annotations

import asyncio
from time import perf_counter

from loguru import logger

from ..metrics.registry import metrics_registry
from .policy import RetryPolicy
from .types import DeliveryOutcome, DeliveryState, Sender, SleepFn, T


async def deliver(
    item: T,
    send: Sender[T],
    policy: RetryPolicy,
    *,
    attempt: int = 0,
    sleep: SleepFn = asyncio.sleep,
) -> DeliveryOutcome[T]:
    """Deliver one item, retrying failed attempts until the retry ceiling.

    Args:
        item: Item handed to ``send``
        send: Async delivery function
        policy: Retry ceiling and backoff curve
        attempt: 0-based attempt to start from
        sleep: Awaitable delay in seconds (injectable for fake clocks)

    Returns:
        DeliveryOutcome in state SUCCEEDED or PERMANENTLY_FAILED
    """
    n = attempt
    delays: list[float] = []
    error: str | None = None

    while True:
        logger.debug(f"Delivery state: {DeliveryState.ATTEMPTING.value}({n})")
        t0 = perf_counter()
        try:
            result = await send(item)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
        else:
            if result is not False:
                _observe(t0, "success")
                metrics_registry.delivery_outcomes_total.labels(
                    state=DeliveryState.SUCCEEDED.value
                ).inc()
                logger.debug(f"Delivered item after {n - attempt + 1} attempt(s)")
                return DeliveryOutcome(
                    item=item,
                    state=DeliveryState.SUCCEEDED,
                    attempts=n - attempt + 1,
                    delays_ms=tuple(delays),
                )
            error = "sender reported a non-OK result"
        _observe(t0, "failure")

        if not policy.should_retry(n):
            metrics_registry.delivery_outcomes_total.labels(
                state=DeliveryState.PERMANENTLY_FAILED.value
            ).inc()
            logger.error(
                f"Delivery permanently failed after {n - attempt + 1} attempt(s): {error}"
            )
            return DeliveryOutcome(
                item=item,
                state=DeliveryState.PERMANENTLY_FAILED,
                attempts=n - attempt + 1,
                error=error,
                delays_ms=tuple(delays),
            )

        delay_ms = policy.next_backoff_ms(n)
        logger.warning(
            f"Delivery attempt {n + 1}/{policy.max_attempts} failed ({error}); "
            f"retrying in {delay_ms:.0f}ms"
        )
        delays.append(delay_ms)
        await sleep(delay_ms / 1000.0)
        n += 1


def _observe(t0: float, outcome: str) -> None:
    metrics_registry.delivery_attempts_total.labels(outcome=outcome).inc()
    metrics_registry.delivery_latency_ms.observe((perf_counter() - t0) * 1000.0)
