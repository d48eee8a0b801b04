"""
HTTP boundary for the mail queue.

Endpoints:
    POST /queue    JSON mail record -> 202 "Queued" (other verbs -> 404)
    POST /email    raw RFC 822 message -> 202 "Accepted", queued in background
    GET  /healthz  queue health snapshot
    GET  /metrics  Prometheus exposition
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Awaitable, Callable, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse
from loguru import logger
from prometheus_client import make_asgi_app

from mail_queue.coordinator import (
    BatchBuffer,
    DeliveryOutcome,
    QueueRegistry,
    RetryPolicy,
    Sender,
)
from mail_queue.errors import MailQueueError
from mail_queue.models import InboundEmail
from mail_queue.webhook import WebhookSender
from relay.config import Settings, get_settings
from relay.service.extract import extract_email


def build_queue(
    settings: Settings,
    send: Sender[InboundEmail],
    on_outcome: Optional[Callable[[DeliveryOutcome[InboundEmail]], Awaitable[None]]] = None,
) -> BatchBuffer[InboundEmail]:
    return BatchBuffer[InboundEmail](
        send,
        name=settings.QUEUE_NAME,
        flush_threshold=settings.FLUSH_THRESHOLD,
        max_batch_size=settings.MAX_BATCH_SIZE,
        retry_policy=RetryPolicy(
            max_retries=settings.MAX_RETRIES,
            base_delay_ms=settings.BASE_DELAY_MS,
        ),
        flush_interval=settings.FLUSH_INTERVAL_SEC,
        on_outcome=on_outcome,
    )


def create_app(
    settings: Optional[Settings] = None,
    sender: Optional[Sender[InboundEmail]] = None,
) -> FastAPI:
    """Build the service. ``sender`` replaces the webhook sender (tests)."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        webhook: WebhookSender | None = None
        send = sender
        if send is None:
            webhook = WebhookSender(
                settings.webhook_url,
                user_agent=settings.USER_AGENT,
                timeout=settings.REQUEST_TIMEOUT_SEC,
            )
            await webhook.start()
            send = webhook

        registry = QueueRegistry[InboundEmail]()
        queue = registry.register(build_queue(settings, send))
        await queue.start()
        app.state.registry = registry
        app.state.queue_name = settings.QUEUE_NAME
        logger.info(f"Mail queue service ready (queue={settings.QUEUE_NAME})")
        try:
            yield
        finally:
            try:
                await registry.stop_all(drain=True, timeout=settings.SHUTDOWN_TIMEOUT_SEC)
            finally:
                if webhook is not None:
                    await webhook.stop()

    app = FastAPI(title="mail-queue", lifespan=lifespan)
    app.mount("/metrics", make_asgi_app())

    def get_queue(request: Request) -> BatchBuffer[InboundEmail]:
        return request.app.state.registry.get(request.app.state.queue_name)

    @app.exception_handler(MailQueueError)
    async def _queue_error(request: Request, exc: MailQueueError):
        logger.error(f"Queue error on {request.url.path}: {exc}")
        return PlainTextResponse(f"Error: {exc}", status_code=500)

    @app.post("/queue", status_code=202, response_class=PlainTextResponse)
    async def enqueue(email: InboundEmail, queue: BatchBuffer = Depends(get_queue)):
        await queue.enqueue(email)
        return PlainTextResponse("Queued", status_code=202)

    @app.api_route("/queue", methods=["GET", "PUT", "PATCH", "DELETE"])
    async def queue_not_found():
        return PlainTextResponse("Not found", status_code=404)

    @app.post("/email", status_code=202, response_class=PlainTextResponse)
    async def inbound_email(
        request: Request,
        background_tasks: BackgroundTasks,
        queue: BatchBuffer = Depends(get_queue),
    ):
        try:
            raw = await request.body()
            email = extract_email(
                raw,
                envelope_from=request.headers.get("x-envelope-from"),
                envelope_to=request.headers.get("x-envelope-to"),
            )
        except Exception as exc:
            logger.error(f"Failed to accept inbound email: {exc}")
            return PlainTextResponse(f"Error: {exc}", status_code=500)

        background_tasks.add_task(queue.enqueue, email)
        return PlainTextResponse("Accepted", status_code=202)

    @app.get("/healthz")
    async def healthz(queue: BatchBuffer = Depends(get_queue)):
        return {"ok": True, **asdict(queue.health())}

    return app
