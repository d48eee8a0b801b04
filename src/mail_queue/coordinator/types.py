from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, Protocol, TypeVar

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)

SleepFn = Callable[[float], Awaitable[None]]


class Sender(Protocol[T_contra]):
    """Delivery function for one item.

    Success is returning anything but ``False``. Returning ``False`` or raising
    counts as a failed attempt.
    """

    async def __call__(self, item: T_contra) -> Optional[bool]: ...


class DeliveryState(str, Enum):
    """States of one item's delivery chain.

    ATTEMPTING is the only non-terminal state: it is logged for each call to
    the sender, while a DeliveryOutcome always carries a terminal state.
    """

    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    PERMANENTLY_FAILED = "permanently_failed"


@dataclass(frozen=True)
class DeliveryOutcome(Generic[T]):
    """Terminal result for one item.

    Attributes:
        item: The item that was delivered (or not)
        state: SUCCEEDED or PERMANENTLY_FAILED
        attempts: Number of calls made to the sender
        error: Last failure message, if any attempt failed
        delays_ms: Backoff waits taken between attempts
    """

    item: T
    state: DeliveryState
    attempts: int
    error: str | None = None
    delays_ms: tuple[float, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.state is DeliveryState.SUCCEEDED
