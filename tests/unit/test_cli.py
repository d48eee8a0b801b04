"""
Tests for the mail-queue CLI (push command).
"""

import json

import pytest
from typer.testing import CliRunner

from relay import cli


class FakeWebhookSender:
    instances = []

    def __init__(self, endpoint, *, user_agent=None, timeout=None):
        self.endpoint = endpoint
        self.items = []
        FakeWebhookSender.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def __call__(self, item):
        self.items.append(item)
        return item.to != "bounce@example.org"


@pytest.fixture
def runner(monkeypatch):
    FakeWebhookSender.instances.clear()
    monkeypatch.setattr(cli, "WebhookSender", FakeWebhookSender)
    monkeypatch.setenv("MAIL_QUEUE_MAX_RETRIES", "0")
    monkeypatch.setenv("MAIL_QUEUE_FLUSH_THRESHOLD", "2")
    return CliRunner()


def write_ndjson(path, records):
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n\n", encoding="utf-8")
    return path


def test_push_delivers_all_records(runner, tmp_path):
    f = write_ndjson(
        tmp_path / "mail.ndjson",
        [{"from": f"s{i}@example.com", "to": "inbox@example.org"} for i in range(5)],
    )

    result = runner.invoke(cli.app, ["push", str(f), "--webhook-url", "http://hook.test/mail"])

    assert result.exit_code == 0, result.output
    summary = json.loads(result.stdout[result.stdout.index("{") :])
    assert summary["queued"] == 5
    assert summary["delivered"] == 5
    assert summary["failed"] == 0

    (sender,) = FakeWebhookSender.instances
    assert sender.endpoint == "http://hook.test/mail"
    assert sorted(e.sender for e in sender.items) == [f"s{i}@example.com" for i in range(5)]


def test_push_reports_permanent_failures(runner, tmp_path):
    f = write_ndjson(
        tmp_path / "mail.ndjson",
        [
            {"from": "a@example.com", "to": "inbox@example.org"},
            {"from": "b@example.com", "to": "bounce@example.org"},
        ],
    )

    result = runner.invoke(cli.app, ["push", str(f), "--webhook-url", "http://hook.test/mail"])

    assert result.exit_code == 2
    summary = json.loads(result.stdout[result.stdout.index("{") :])
    assert summary["delivered"] == 1
    assert summary["failed"] == 1
    assert summary["errors"][0]["to"] == "bounce@example.org"


def test_push_requires_webhook_url(runner, tmp_path, monkeypatch):
    monkeypatch.delenv("MAIL_QUEUE_WEBHOOK_URL", raising=False)
    f = write_ndjson(tmp_path / "mail.ndjson", [{"from": "a@x.io", "to": "b@y.io"}])

    result = runner.invoke(cli.app, ["push", str(f)])

    assert result.exit_code == 1
