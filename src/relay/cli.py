import asyncio
import json
import sys
from pathlib import Path
from typing import Iterator, Optional

import typer
from loguru import logger

from mail_queue.coordinator import DeliveryOutcome
from mail_queue.models import InboundEmail
from mail_queue.webhook import WebhookSender
from relay.config import get_settings
from relay.service.app import build_queue

app = typer.Typer(help="Inbound mail queue CLI (service, one-shot delivery)")


def iter_ndjson(path: Path) -> Iterator[dict]:
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as e:
                raise typer.BadParameter(f"{path}:{lineno}: invalid JSON ({e})")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Run the HTTP service (POST /queue, POST /email, /healthz, /metrics)."""
    import uvicorn

    settings = get_settings()
    if not settings.webhook_url:
        logger.error("MAIL_QUEUE_WEBHOOK_URL is not set")
        sys.exit(1)

    uvicorn.run(
        "relay.service.app:create_app",
        factory=True,
        host=host or settings.APP_HOST,
        port=port or settings.APP_PORT,
    )


@app.command()
def push(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="NDJSON mail records"),
    webhook_url: Optional[str] = typer.Option(
        None, "--webhook-url", envvar="MAIL_QUEUE_WEBHOOK_URL", help="Destination URL"
    ),
):
    """Queue every record in FILE, drain, and print a delivery summary."""
    settings = get_settings()
    url = webhook_url or settings.webhook_url
    if not url:
        logger.error("No webhook URL (use --webhook-url or MAIL_QUEUE_WEBHOOK_URL)")
        sys.exit(1)

    emails = [InboundEmail.model_validate(rec) for rec in iter_ndjson(file)]
    logger.info(f"Loaded {len(emails)} record(s) from {file}")

    outcomes = asyncio.run(_push(emails, url))
    failed = [o for o in outcomes if not o.ok]
    summary = {
        "queued": len(emails),
        "delivered": len(outcomes) - len(failed),
        "failed": len(failed),
        "errors": [{"to": o.item.to, "error": o.error} for o in failed],
    }
    typer.echo(json.dumps(summary, indent=2))

    if failed:
        logger.error(f"{len(failed)} record(s) permanently failed")
        sys.exit(2)
    logger.success(f"Delivered {len(outcomes)} record(s)")


async def _push(emails: list[InboundEmail], url: str) -> list[DeliveryOutcome]:
    settings = get_settings()
    outcomes: list[DeliveryOutcome] = []

    async def collect(outcome: DeliveryOutcome) -> None:
        outcomes.append(outcome)

    async with WebhookSender(
        url, user_agent=settings.USER_AGENT, timeout=settings.REQUEST_TIMEOUT_SEC
    ) as sender:
        async with build_queue(settings, sender, on_outcome=collect) as queue:
            for email in emails:
                await queue.enqueue(email)
    return outcomes


if __name__ == "__main__":
    app()
