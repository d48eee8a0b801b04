"""
Retry policy for per-item delivery.

Unjittered exponential backoff without a cap: the wait before retry ``n+1``
is ``base_delay_ms * 2**n``. Growth is bounded only by ``max_retries``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_ms: float = 1000.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def should_retry(self, attempt: int) -> bool:
        """True if a failure at 0-based ``attempt`` leaves a retry available."""
        return attempt < self.max_retries

    def next_backoff_ms(self, attempt: int) -> float:
        """Delay to wait after failed ``attempt`` (0-based) before the next one."""
        return self.base_delay_ms * (self.backoff_multiplier**attempt)

    def schedule_ms(self) -> list[float]:
        """Full backoff schedule for an item that fails every attempt."""
        return [self.next_backoff_ms(n) for n in range(self.max_retries)]
