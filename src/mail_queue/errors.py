"""
Custom exceptions for the mail queue.

Delivery failures are classified here; the drain controller absorbs them into
per-item outcomes instead of letting them escape.
"""


class MailQueueError(Exception):
    """Base error for the mail queue."""

    pass


class DeliveryError(MailQueueError):
    """A single delivery attempt failed (transport error or rejected response)."""

    pass


class WebhookStatusError(DeliveryError):
    """The webhook answered with a non-OK status."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Webhook returned {status_code}")
        self.status_code = status_code
        self.body = body


class QueueNotFoundError(MailQueueError, KeyError):
    """No queue is registered under the requested name."""

    pass


class QueueExistsError(MailQueueError):
    """A queue is already registered under the requested name."""

    pass


def map_transport_error(e: Exception) -> DeliveryError:
    import httpx

    if isinstance(e, DeliveryError):
        return e
    if isinstance(e, httpx.TimeoutException):
        return DeliveryError(f"Webhook timed out: {e}")
    if isinstance(e, httpx.TransportError):
        return DeliveryError(f"Webhook unreachable: {e}")
    return DeliveryError(f"{type(e).__name__}: {e}")
