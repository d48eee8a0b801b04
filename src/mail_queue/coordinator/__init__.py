"""Batching coordinator

In-memory batch buffer with threshold flushing and a single-drain guard,
per-item delivery with unjittered exponential backoff, and a named registry
of queue instances.
"""

from .types import Sender, SleepFn, T, DeliveryState, DeliveryOutcome
from .policy import RetryPolicy
from .delivery import deliver
from .buffer import BatchBuffer, QueueHealth, DEFAULT_QUEUE_NAME
from .registry import QueueRegistry

__all__ = [
    # types
    "Sender",
    "SleepFn",
    "T",
    "DeliveryState",
    "DeliveryOutcome",
    "QueueHealth",
    # policies
    "RetryPolicy",
    # runtime
    "deliver",
    "BatchBuffer",
    "QueueRegistry",
    "DEFAULT_QUEUE_NAME",
]
