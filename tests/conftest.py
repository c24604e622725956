from __future__ import annotations

from typing import Any

import httpx
import pytest
import pytest_asyncio

from newsletter_ops.notifications.slack import SlackNotifier
from newsletter_ops.settings import SettingsResolver
from newsletter_ops.store import LogEntry


class FakeStore:
    """In-memory settings/log/feed/campaign store with switchable failures."""

    def __init__(self) -> None:
        self.settings: dict[str, str] = {}
        self.logs: list[LogEntry] = []
        self.feeds: list[dict[str, Any]] = []
        self.recent_campaigns = 1
        self.settings_error: Exception | None = None
        self.insert_error: Exception | None = None
        self.ping_error: Exception | None = None
        self.feeds_error: Exception | None = None
        self.campaigns_error: Exception | None = None
        self.campaign_queries: list[float] = []

    async def get_setting(self, key: str) -> str | None:
        if self.settings_error is not None:
            raise self.settings_error
        return self.settings.get(key)

    async def insert_log(self, entry: LogEntry) -> None:
        if self.insert_error is not None:
            raise self.insert_error
        self.logs.append(entry)

    async def ping(self) -> None:
        if self.ping_error is not None:
            raise self.ping_error

    async def list_active_feeds(self) -> list[dict[str, Any]]:
        if self.feeds_error is not None:
            raise self.feeds_error
        return list(self.feeds)

    async def count_campaigns_since(self, since_ts: float) -> int:
        self.campaign_queries.append(since_ts)
        if self.campaigns_error is not None:
            raise self.campaigns_error
        return self.recent_campaigns


class RecordingNotifier:
    """Stands in for SlackNotifier where only the calls matter."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple, dict]] = []

    def _named(self, name: str) -> list[tuple[tuple, dict]]:
        return [(a, k) for n, a, k in self.calls if n == name]

    async def send_alert(self, *args: Any, **kwargs: Any) -> bool:
        self.calls.append(("send_alert", args, kwargs))
        return True

    async def send_system_alert(self, *args: Any, **kwargs: Any) -> bool:
        self.calls.append(("send_system_alert", args, kwargs))
        return True

    async def send_health_check_alert(self, *args: Any, **kwargs: Any) -> bool:
        self.calls.append(("send_health_check_alert", args, kwargs))
        return True


class WebhookRecorder:
    """httpx.MockTransport handler that records posted payloads."""

    def __init__(self, status_code: int = 200, exc: Exception | None = None) -> None:
        self.status_code = status_code
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, text="ok" if self.status_code < 300 else "invalid_payload")


WEBHOOK_URL = "https://hooks.slack.test/services/T000/B000/secret"


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def recorder() -> WebhookRecorder:
    return WebhookRecorder()


@pytest_asyncio.fixture
async def make_notifier(store: FakeStore):
    clients: list[httpx.AsyncClient] = []

    def _make(recorder: WebhookRecorder, *, webhook_url: str = WEBHOOK_URL, **kwargs: Any) -> SlackNotifier:
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder), trust_env=False)
        clients.append(client)
        resolver = SettingsResolver(store, default_webhook_url=webhook_url)
        return SlackNotifier(resolver, store, webhook_url=webhook_url, http_client=client, **kwargs)

    yield _make

    for client in clients:
        await client.aclose()
