"""Fail-open lookups against the persisted application settings."""

from __future__ import annotations

import structlog

from newsletter_ops.notifications.policy import CATEGORY_SETTING_KEYS, NotificationCategory
from newsletter_ops.store import SettingsStore

logger = structlog.get_logger(__name__)

WEBHOOK_URL_KEY = "slack_webhook_url"

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


def parse_flag(raw: str | None, default: bool) -> bool:
    if raw is None:
        return bool(default)
    s = str(raw).strip().lower()
    if s in _TRUE_VALUES:
        return True
    if s in _FALSE_VALUES:
        return False
    return bool(default)


class SettingsResolver:
    """Resolves settings by key, never raising to the caller.

    A store error, a missing row, or a malformed value all resolve to the
    caller-supplied default.
    """

    def __init__(self, store: SettingsStore, *, default_webhook_url: str = ""):
        self.store = store
        self.default_webhook_url = default_webhook_url or ""

    async def resolve(self, key: str, default: str | None = None) -> str | None:
        try:
            value = await self.store.get_setting(key)
        except Exception as e:
            logger.warning("Settings lookup failed, using default", key=key, error=str(e))
            return default
        return default if value is None else value

    async def resolve_flag(self, key: str, default: bool = True) -> bool:
        raw = await self.resolve(key)
        return parse_flag(raw, default)

    async def resolve_str(self, key: str, default: str = "") -> str:
        raw = await self.resolve(key)
        s = str(raw).strip() if raw is not None else ""
        return s if s else default

    async def resolve_float(self, key: str, default: float) -> float:
        raw = await self.resolve(key)
        if raw is None:
            return float(default)
        try:
            return float(str(raw).strip())
        except ValueError:
            return float(default)

    async def is_category_enabled(self, category: NotificationCategory) -> bool:
        return await self.resolve_flag(CATEGORY_SETTING_KEYS[category], default=True)

    async def webhook_url(self) -> str:
        return await self.resolve_str(WEBHOOK_URL_KEY, self.default_webhook_url)
