"""
Mail Queue

In-memory batching relay for inbound mail: records are buffered, flushed in
bounded batches, and delivered one by one to a webhook with exponential
backoff retries.

Usage:
    from mail_queue import BatchBuffer, InboundEmail, WebhookSender

    async with WebhookSender("https://example.com/hooks/mail") as sender:
        async with BatchBuffer[InboundEmail](sender, flush_threshold=50) as queue:
            await queue.enqueue(InboundEmail(sender="a@x.io", to="b@y.io"))
"""

from .coordinator import (
    BatchBuffer,
    DeliveryOutcome,
    DeliveryState,
    QueueHealth,
    QueueRegistry,
    RetryPolicy,
    deliver,
)
from .errors import DeliveryError, MailQueueError, WebhookStatusError
from .models import InboundEmail
from .webhook import WebhookSender

__version__ = "0.1.0"
__all__ = [
    "BatchBuffer",
    "QueueRegistry",
    "QueueHealth",
    "RetryPolicy",
    "deliver",
    "DeliveryOutcome",
    "DeliveryState",
    "InboundEmail",
    "WebhookSender",
    "MailQueueError",
    "DeliveryError",
    "WebhookStatusError",
]
