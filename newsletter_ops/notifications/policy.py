"""Alert policy: notification categories, severities and their presentation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from newsletter_ops.settings import SettingsResolver


class Severity(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class NotificationCategory(str, Enum):
    RSS_PROCESSING_UPDATES = "rss_processing_updates"
    EMAIL_DELIVERY_UPDATES = "email_delivery_updates"
    SYSTEM_ERRORS = "system_errors"
    HEALTH_CHECK_ALERTS = "health_check_alerts"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"


# Each category is switched on/off by exactly one settings row.
CATEGORY_SETTING_KEYS: dict[NotificationCategory, str] = {
    c: f"slack_{c.value}_enabled" for c in NotificationCategory
}

SEVERITY_GLYPHS: dict[Severity, str] = {
    Severity.INFO: "ℹ️",
    Severity.WARN: "⚠️",
    Severity.ERROR: "🚨",
}

HEALTH_STATUS_SEVERITY: dict[HealthStatus, Severity] = {
    HealthStatus.HEALTHY: Severity.INFO,
    HealthStatus.DEGRADED: Severity.WARN,
    HealthStatus.DOWN: Severity.ERROR,
}


class AlertPolicy:
    """Decides whether a category is delivered and how a message is presented."""

    def __init__(self, resolver: SettingsResolver):
        self.resolver = resolver

    async def is_enabled(self, category: NotificationCategory | None) -> bool:
        if category is None:
            return True
        return await self.resolver.is_category_enabled(NotificationCategory(category))

    @staticmethod
    def decorate(text: str, severity: Severity | str) -> str:
        return f"{SEVERITY_GLYPHS[Severity(severity)]} {text}"

    @staticmethod
    def severity_for_status(status: HealthStatus | str) -> Severity:
        return HEALTH_STATUS_SEVERITY[HealthStatus(status)]
