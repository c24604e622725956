"""Slack incoming-webhook notifications for operational alerts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

import httpx
import structlog

from newsletter_ops.notifications.messages import (
    FEATURED_EVENT_PRICE_KEY,
    PAID_PLACEMENT_PRICE_KEY,
    EventSubmission,
    build_email_campaign_message,
    build_event_submission_message,
    build_health_check_message,
    build_rss_processing_message,
)
from newsletter_ops.notifications.policy import AlertPolicy, HealthStatus, NotificationCategory, Severity
from newsletter_ops.store import LogEntry, LogLevel, LogStore

if TYPE_CHECKING:
    from newsletter_ops.settings import SettingsResolver

logger = structlog.get_logger(__name__)

NOTIFICATION_SOURCE = "notification_service"
DEFAULT_TIMEOUT_SECONDS = 5.0


async def post_webhook(
    client: httpx.AsyncClient, url: str, text: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS
) -> tuple[bool, str | None]:
    """POST ``{"text": text}`` to the webhook. Returns (ok, error)."""
    try:
        resp = await client.post(url, json={"text": text}, timeout=timeout)
    except Exception as e:
        msg = f"{type(e).__name__}: {e}"
        # Slack webhook URLs embed their secret in the path.
        return False, msg.replace(url, "<redacted>") if url else msg
    if 200 <= resp.status_code < 300:
        return True, None
    return False, f"HTTP {resp.status_code}: {resp.text[:200]}"


class SlackNotifier:
    """Best-effort delivery of messages to a Slack incoming webhook.

    Every attempt is written to the log store. Delivery problems are
    recorded and swallowed, never raised and never retried.
    """

    def __init__(
        self,
        resolver: SettingsResolver,
        log_store: LogStore,
        *,
        webhook_url: str = "",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        public_url: str = "",
        default_paid_placement_price: float = 5.0,
        default_featured_price: float = 15.0,
    ):
        """Initialize the notifier.

        Args:
            resolver: Settings resolver used for the destination and category flags
            log_store: Store receiving one entry per delivery attempt
            webhook_url: Process-wide destination used by ``send``
            http_client: Shared client; a short-lived one is created per call when omitted
            timeout_seconds: Bound on each webhook POST
        """
        self.resolver = resolver
        self.log_store = log_store
        self.policy = AlertPolicy(resolver)
        self.webhook_url = webhook_url or ""
        self.http_client = http_client
        self.timeout_seconds = float(timeout_seconds)
        self.public_url = public_url
        self.default_paid_placement_price = float(default_paid_placement_price)
        self.default_featured_price = float(default_featured_price)

    async def _post(self, url: str, text: str) -> tuple[bool, str | None]:
        if self.http_client is not None:
            return await post_webhook(self.http_client, url, text, timeout=self.timeout_seconds)
        async with httpx.AsyncClient() as client:
            return await post_webhook(client, url, text, timeout=self.timeout_seconds)

    async def _record(self, level: LogLevel, message: str, context: dict[str, Any]) -> None:
        entry = LogEntry(level=level, message=message, context=context, source=NOTIFICATION_SOURCE)
        try:
            await self.log_store.insert_log(entry)
        except Exception as e:
            logger.error("Failed to record notification log entry", log_message=message, error=str(e))

    async def send(self, text: str) -> bool:
        """Send a plain message to the configured webhook.

        Returns:
            True if the webhook accepted the message
        """
        if not self.webhook_url:
            logger.warning("Slack webhook URL not configured")
            return False

        ok, error = await self._post(self.webhook_url, text)
        if ok:
            await self._record(LogLevel.INFO, "Simple Slack message sent", {"message": text})
            return True

        logger.error("Failed to send simple Slack message", error=error)
        await self._record(
            LogLevel.ERROR,
            "Failed to send simple Slack message",
            {"message": text, "error": error or "Unknown error"},
        )
        return False

    async def send_alert(
        self,
        text: str,
        severity: Severity | str = Severity.INFO,
        category: NotificationCategory | str | None = None,
        *,
        context: dict[str, Any] | None = None,
    ) -> bool:
        """Send a severity-prefixed alert, honouring the category switch.

        Returns:
            True if the webhook accepted the message
        """
        severity = Severity(severity)
        category = NotificationCategory(category) if category is not None else None

        url = await self.resolver.webhook_url()
        if not url:
            logger.warning("Slack webhook URL not configured")
            return False

        log_context: dict[str, Any] = {
            "original_message": text,
            "level": severity.value,
            "category": category.value if category else None,
            "context": dict(context or {}),
        }

        if not await self.policy.is_enabled(category):
            logger.info("Slack notification skipped", category=category.value if category else None)
            await self._record(LogLevel.INFO, "Slack notification skipped", log_context)
            return False

        ok, error = await self._post(url, self.policy.decorate(text, severity))
        if ok:
            await self._record(LogLevel.INFO, "Slack notification sent", log_context)
            return True

        logger.error("Failed to send Slack notification", error=error)
        await self._record(
            LogLevel.ERROR,
            "Failed to send Slack notification",
            {**log_context, "error": error or "Unknown error"},
        )
        return False

    async def send_rss_processing_alert(
        self, success: bool, campaign_id: str | None = None, error: str | None = None
    ) -> bool:
        return await self.send_alert(
            build_rss_processing_message(success, campaign_id, error),
            Severity.INFO if success else Severity.ERROR,
            NotificationCategory.RSS_PROCESSING_UPDATES,
        )

    async def send_email_campaign_alert(
        self, kind: str, success: bool, campaign_id: str, error: str | None = None
    ) -> bool:
        return await self.send_alert(
            build_email_campaign_message(kind, success, campaign_id, error),
            Severity.INFO if success else Severity.ERROR,
            NotificationCategory.EMAIL_DELIVERY_UPDATES,
        )

    async def send_system_alert(self, message: str, severity: Severity | str) -> bool:
        return await self.send_alert(f"System Alert: {message}", severity, NotificationCategory.SYSTEM_ERRORS)

    async def send_health_check_alert(
        self, component: str, status: HealthStatus | str, details: str | None = None
    ) -> bool:
        return await self.send_alert(
            build_health_check_message(component, status, details),
            AlertPolicy.severity_for_status(status),
            NotificationCategory.HEALTH_CHECK_ALERTS,
        )

    async def send_event_submission(self, submissions: Iterable[EventSubmission | dict[str, Any]]) -> bool:
        """Announce newly submitted events, priced from the settings store."""
        items = [s if isinstance(s, EventSubmission) else EventSubmission.from_dict(s) for s in submissions]
        if not items:
            logger.warning("No event submissions to announce")
            return False

        paid = await self.resolver.resolve_float(PAID_PLACEMENT_PRICE_KEY, self.default_paid_placement_price)
        featured = await self.resolver.resolve_float(FEATURED_EVENT_PRICE_KEY, self.default_featured_price)
        message = build_event_submission_message(
            items, public_url=self.public_url, paid_placement_price=paid, featured_price=featured
        )
        return await self.send(message)
