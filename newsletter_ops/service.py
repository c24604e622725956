"""Process-level wiring: one resolver and one notifier shared by reference."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from newsletter_ops.config import OpsConfig
from newsletter_ops.db import SqliteStore, ensure_schema
from newsletter_ops.errors import ErrorHandler
from newsletter_ops.health import HealthMonitor
from newsletter_ops.notifications.slack import SlackNotifier
from newsletter_ops.settings import SettingsResolver


@dataclass
class OpsServices:
    store: SqliteStore
    resolver: SettingsResolver
    notifier: SlackNotifier
    error_handler: ErrorHandler
    health_monitor: HealthMonitor


def build_services(config: OpsConfig, *, http_client: httpx.AsyncClient | None = None) -> OpsServices:
    ensure_schema(config.db_path)
    store = SqliteStore(config.db_path)
    resolver = SettingsResolver(store, default_webhook_url=config.slack_webhook_url)
    notifier = SlackNotifier(
        resolver,
        store,
        webhook_url=config.slack_webhook_url,
        http_client=http_client,
        timeout_seconds=config.notification_timeout_seconds,
        public_url=config.public_url,
        default_paid_placement_price=config.pricing.paid_placement,
        default_featured_price=config.pricing.featured,
    )
    error_handler = ErrorHandler(store, notifier)
    health_monitor = HealthMonitor(
        log_store=store,
        feeds=store,
        campaigns=store,
        notifier=notifier,
        error_handler=error_handler,
        thresholds=config.health,
    )
    return OpsServices(
        store=store,
        resolver=resolver,
        notifier=notifier,
        error_handler=error_handler,
        health_monitor=health_monitor,
    )
